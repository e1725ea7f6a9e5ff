import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session, contains_eager

from promo_pricing.database.unit_of_work import UnitOfWork
from promo_pricing.enums.promotion import CouponType, RecordStatus
from promo_pricing.models.coupon import Coupon, CouponUsage
from promo_pricing.models.promotion import Promotion
from promo_pricing.schemas.coupon import CouponCreate
from promo_pricing.services.customer_lookup import CustomerContext, is_user_in_cluster
from promo_pricing.services.promotion_engine.allocation import is_variant_eligible
from promo_pricing.services.promotion_engine.eligibility import rule_for
from promo_pricing.services.promotion_engine.line_items import LineItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CouponRejected:
    """A coupon that cannot be used right now. Not an error."""
    code: str
    reason: str  # invalid / cluster / scope / exclusive
    message: str


@dataclass(frozen=True)
class CouponApplication:
    coupon: Coupon
    promotion: Promotion
    discount: float
    free_shipping: bool = False

    @property
    def progress_message(self) -> str:
        value = f"{float(self.promotion.discount_value or 0):g}"
        if self.promotion.coupon_type == CouponType.percentage_discount.value:
            benefit = f"{value}% off"
        elif self.promotion.coupon_type == CouponType.fixed_discount.value:
            benefit = f"a fixed discount of ${value}"
        else:
            benefit = "free shipping"
        return f"Coupon {self.coupon.code} is valid! You get {benefit}."


CouponResolution = Union[CouponApplication, CouponRejected]


# ---------- LOOKUP ----------

def find_redeemable_coupon(
    db: Session, code: str, now: Optional[datetime] = None
) -> Optional[Coupon]:
    """
    Coupon with this exact code, active, linked to an active promotion whose
    validity window contains `now`.
    """
    now = now or datetime.utcnow()
    return (
        db.query(Coupon)
        .join(Promotion, Coupon.promotion_id == Promotion.promotion_id)
        .options(contains_eager(Coupon.promotion))
        .filter(
            Coupon.code == code,
            Coupon.status == RecordStatus.active.value,
            Promotion.status == RecordStatus.active.value,
            Promotion.start_date <= now,
            Promotion.end_date >= now,
        )
        .first()
    )


def is_coupon_applicable(
    promotion: Promotion,
    line_items: Sequence[LineItem],
    customer: CustomerContext,
) -> bool:
    """
    The coupon's promotion must cover at least one line, and meet its
    threshold when its type carries one.
    """
    if not any(is_variant_eligible(promotion, line) for line in line_items):
        return False
    rule = rule_for(promotion)
    if rule is None:
        return True
    return rule.is_applicable(line_items, customer)


def compute_coupon_discount(promotion: Promotion, subtotal: float) -> float:
    value = float(promotion.discount_value or 0.0)
    if promotion.coupon_type == CouponType.percentage_discount.value:
        return subtotal * (value / 100.0)
    if promotion.coupon_type == CouponType.fixed_discount.value:
        return max(0.0, min(value, subtotal))
    return 0.0


# ---------- RESOLUTION ----------

def resolve_coupon(
    uow: UnitOfWork,
    code: str,
    line_items: Sequence[LineItem],
    subtotal: float,
    automatic_promotions: Sequence[Promotion],
    customer: CustomerContext,
    now: Optional[datetime] = None,
) -> CouponResolution:
    db = uow.session

    coupon = find_redeemable_coupon(db, code, now=now)
    if coupon is None:
        return _reject(code, "invalid", f"Coupon {code} is invalid or inactive")

    promotion = coupon.promotion

    if promotion.restrict_to_cluster and promotion.cluster_id is not None:
        if not is_user_in_cluster(db, customer.user_id, promotion.cluster_id):
            return _reject(code, "cluster", "User does not belong to the promotion's cluster")

    if not is_coupon_applicable(promotion, line_items, customer):
        return _reject(code, "scope", f"Coupon {code} does not apply to the items in this order")

    if any(p.is_exclusive for p in automatic_promotions):
        return _reject(
            code,
            "exclusive",
            "Coupon cannot be applied because an exclusive automatic promotion is active",
        )

    discount = compute_coupon_discount(promotion, subtotal)
    free_shipping = promotion.coupon_type == CouponType.free_shipping.value

    return CouponApplication(
        coupon=coupon,
        promotion=promotion,
        discount=discount,
        free_shipping=free_shipping,
    )


def _reject(code: str, reason: str, message: str) -> CouponRejected:
    logger.info("Coupon %r rejected (%s): %s", code, reason, message)
    return CouponRejected(code=code, reason=reason, message=message)


def record_coupon_usage(
    uow: UnitOfWork,
    application: CouponApplication,
    user_id: int,
    cart_id: Optional[int] = None,
    order_id: Optional[int] = None,
) -> CouponUsage:
    usage = CouponUsage(
        promotion_id=application.promotion.promotion_id,
        coupon_id=application.coupon.coupon_id,
        user_id=user_id,
        cart_id=cart_id,
        order_id=order_id,
        applied_at=datetime.utcnow(),
    )
    uow.add(usage)
    uow.flush()
    logger.info(
        "Recorded usage %s of coupon %s for user %s",
        usage.usage_id,
        application.coupon.code,
        user_id,
    )
    return usage


# ---------- ADMIN ----------

def create_coupon(db: Session, data: CouponCreate) -> Coupon:
    existing = db.query(Coupon).filter(Coupon.code == data.code).first()
    if existing:
        raise HTTPException(status_code=400, detail="Coupon code already exists")

    promotion = (
        db.query(Promotion).filter(Promotion.promotion_id == data.promotion_id).first()
    )
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")

    coupon = Coupon(
        code=data.code,
        promotion_id=promotion.promotion_id,
        status=RecordStatus.active.value,
    )
    db.add(coupon)
    db.commit()
    db.refresh(coupon)
    return coupon


def list_coupons(db: Session, status: Optional[str] = None) -> List[Coupon]:
    query = db.query(Coupon)
    if status:
        query = query.filter(Coupon.status == status)
    return query.order_by(Coupon.coupon_id.asc()).all()


def get_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
    return db.query(Coupon).filter(Coupon.coupon_id == coupon_id).first()


def deactivate_coupon(db: Session, coupon_id: int) -> Optional[Coupon]:
    coupon = get_coupon(db, coupon_id)
    if not coupon:
        return None
    coupon.status = RecordStatus.inactive.value
    db.commit()
    db.refresh(coupon)
    return coupon

