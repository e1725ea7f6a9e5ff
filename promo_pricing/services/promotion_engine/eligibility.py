"""
Automatic promotion eligibility.

Each automatic promotion type maps to one rule dataclass. A rule answers a
single question, `is_applicable(line_items, customer)`, and knows how far the
current cart is from its threshold (used for the progress messages shown in
the storefront).

Types without a rule (offer / promotion / coupon) are never picked up by the
automatic scan; they only apply through coupon redemption.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Union

from sqlalchemy.orm import Session, selectinload

from promo_pricing.enums.promotion import PromotionType, RecordStatus
from promo_pricing.models.promotion import Promotion
from promo_pricing.services.customer_lookup import CustomerContext
from promo_pricing.services.promotion_engine.line_items import LineItem, PromotionScope

logger = logging.getLogger(__name__)


def _fmt(value) -> str:
    return f"{float(value or 0):g}"


@dataclass(frozen=True)
class ProgressReport:
    is_eligible: bool
    message: str


@dataclass(frozen=True)
class QuantityDiscountRule:
    scope: PromotionScope
    min_quantity: int = 0

    def measured(self, line_items: Sequence[LineItem], customer: CustomerContext) -> float:
        return sum(line.quantity for line in self.scope.in_scope(line_items))

    def is_applicable(self, line_items: Sequence[LineItem], customer: CustomerContext) -> bool:
        return self.measured(line_items, customer) >= self.min_quantity

    def progress(self, promotion, line_items, customer) -> ProgressReport:
        total = int(self.measured(line_items, customer))
        remaining = self.min_quantity - total
        value = _fmt(promotion.discount_value)
        if remaining > 0:
            return ProgressReport(
                False,
                f"Add {remaining} more items to get {value}% off (buy ≥{self.min_quantity} items).",
            )
        return ProgressReport(
            True,
            f"Promotion valid! {value}% off for buying {total} items (≥{self.min_quantity}).",
        )


@dataclass(frozen=True)
class OrderCountDiscountRule:
    min_order_count: int = 0

    def measured(self, line_items: Sequence[LineItem], customer: CustomerContext) -> float:
        return customer.delivered_orders

    def is_applicable(self, line_items: Sequence[LineItem], customer: CustomerContext) -> bool:
        return self.measured(line_items, customer) >= self.min_order_count

    def progress(self, promotion, line_items, customer) -> ProgressReport:
        count = int(self.measured(line_items, customer))
        remaining = self.min_order_count - count
        value = _fmt(promotion.discount_value)
        if remaining > 0:
            return ProgressReport(
                False,
                f"Complete {remaining} more delivered orders to get {value}% off "
                f"(≥{self.min_order_count} orders).",
            )
        return ProgressReport(
            True,
            f"Promotion valid! You have {count} delivered orders, {value}% off applies.",
        )


@dataclass(frozen=True)
class UnitDiscountRule:
    scope: PromotionScope
    min_unit_measure: float = 0.0

    def measured(self, line_items: Sequence[LineItem], customer: CustomerContext) -> float:
        return sum(line.unit_measure or 0.0 for line in self.scope.in_scope(line_items))

    def is_applicable(self, line_items: Sequence[LineItem], customer: CustomerContext) -> bool:
        return self.measured(line_items, customer) >= self.min_unit_measure

    def progress(self, promotion, line_items, customer) -> ProgressReport:
        total = float(self.measured(line_items, customer))
        remaining = self.min_unit_measure - total
        value = _fmt(promotion.discount_value)
        if remaining > 0:
            return ProgressReport(
                False,
                f"Add {remaining:.2f} more meters to get {value}% off "
                f"(≥{_fmt(self.min_unit_measure)} meters).",
            )
        return ProgressReport(
            True,
            f"Promotion valid! {value}% off for buying {total:.2f} meters "
            f"(≥{_fmt(self.min_unit_measure)}).",
        )


EligibilityRule = Union[QuantityDiscountRule, OrderCountDiscountRule, UnitDiscountRule]


def rule_for(promotion) -> Optional[EligibilityRule]:
    """Build the eligibility rule for a promotion, or None if it has none."""
    try:
        promotion_type = PromotionType(promotion.promotion_type)
    except ValueError:
        logger.warning(
            "Promotion %s has unknown type %r",
            promotion.promotion_id,
            promotion.promotion_type,
        )
        return None

    if promotion_type == PromotionType.quantity_discount:
        return QuantityDiscountRule(
            scope=PromotionScope.from_promotion(promotion),
            min_quantity=int(promotion.min_quantity or 0),
        )
    if promotion_type == PromotionType.order_count_discount:
        return OrderCountDiscountRule(min_order_count=int(promotion.min_order_count or 0))
    if promotion_type == PromotionType.unit_discount:
        return UnitDiscountRule(
            scope=PromotionScope.from_promotion(promotion),
            min_unit_measure=float(promotion.min_unit_measure or 0.0),
        )
    return None


def is_promotion_applicable(
    promotion,
    line_items: Sequence[LineItem],
    customer: CustomerContext,
) -> bool:
    rule = rule_for(promotion)
    if rule is None:
        return False
    return rule.is_applicable(line_items, customer)


def get_promotion_progress(
    promotion,
    line_items: Sequence[LineItem],
    customer: CustomerContext,
) -> ProgressReport:
    rule = rule_for(promotion)
    if rule is None:
        return ProgressReport(False, "")
    return rule.progress(promotion, line_items, customer)


# ===================== ACTIVE PROMOTION LOOKUP =====================


def get_active_promotions(db: Session, now: Optional[datetime] = None) -> List[Promotion]:
    """Active promotions whose validity window contains `now`."""
    now = now or datetime.utcnow()
    return (
        db.query(Promotion)
        .options(selectinload(Promotion.products), selectinload(Promotion.categories))
        .filter(
            Promotion.status == RecordStatus.active.value,
            Promotion.start_date <= now,
            Promotion.end_date >= now,
        )
        .order_by(Promotion.promotion_id.asc())
        .all()
    )


def get_applicable_promotions(
    db: Session,
    line_items: Sequence[LineItem],
    customer: CustomerContext,
    now: Optional[datetime] = None,
) -> List[Promotion]:
    """
    Automatic promotions that apply to these line items.

    An exclusive promotion cannot be combined with anything else: when at
    least one applicable promotion is exclusive, only the first exclusive one
    is returned.
    """
    applicable = [
        promotion
        for promotion in get_active_promotions(db, now)
        if is_promotion_applicable(promotion, line_items, customer)
    ]

    exclusive = [p for p in applicable if p.is_exclusive]
    if exclusive:
        logger.info(
            "Exclusive promotion %s overrides %d other applicable promotions",
            exclusive[0].promotion_id,
            len(applicable) - 1,
        )
        return exclusive[:1]
    return applicable
