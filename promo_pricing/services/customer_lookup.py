from typing import Callable, Optional

from sqlalchemy.orm import Session

from promo_pricing.enums.order_status import OrderStatus
from promo_pricing.models.order import Order
from promo_pricing.models.user import ClientCluster


def count_delivered_orders(db: Session, user_id: int) -> int:
    return (
        db.query(Order)
        .filter(
            Order.user_id == user_id,
            Order.order_status == OrderStatus.delivered.value,
        )
        .count()
    )


def is_user_in_cluster(db: Session, user_id: int, cluster_id: int) -> bool:
    row = (
        db.query(ClientCluster)
        .filter(
            ClientCluster.user_id == user_id,
            ClientCluster.cluster == cluster_id,
        )
        .first()
    )
    return row is not None


class CustomerContext:
    """
    The shopper being priced. The delivered-order count is looked up at most
    once per pricing pass and only if an order-count rule asks for it.
    """

    def __init__(self, user_id: int, order_count_loader: Callable[[int], int]):
        self.user_id = user_id
        self._order_count_loader = order_count_loader
        self._delivered_orders: Optional[int] = None

    @classmethod
    def for_session(cls, db: Session, user_id: int) -> "CustomerContext":
        return cls(user_id, lambda uid: count_delivered_orders(db, uid))

    @property
    def delivered_orders(self) -> int:
        if self._delivered_orders is None:
            self._delivered_orders = int(self._order_count_loader(self.user_id) or 0)
        return self._delivered_orders
