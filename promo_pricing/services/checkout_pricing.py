"""
Checkout pricing.

Builds the line items of a cart (or of a single "buy now" item), runs the
automatic promotions and an optional coupon through the promotion engine and
returns subtotal, shipping, urgent-delivery fee, discount and total.

Everything happens inside one UnitOfWork: a rejected coupon or any error
rolls the whole pass back, so a coupon usage row is only kept when the
pricing it belongs to completed.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy.orm import Session, selectinload

from promo_pricing.core.config import settings
from promo_pricing.database.unit_of_work import UnitOfWork
from promo_pricing.enums.promotion import RecordStatus
from promo_pricing.models.cart import Cart, CartDetail, ShippingOption
from promo_pricing.models.catalog import Product, ProductVariant
from promo_pricing.models.promotion import Promotion
from promo_pricing.schemas.pricing import (
    AppliedPromotion,
    DirectPurchaseItem,
    PricingRequest,
    PricingResult,
)
from promo_pricing.services.coupon_service import (
    CouponApplication,
    CouponRejected,
    record_coupon_usage,
    resolve_coupon,
)
from promo_pricing.services.customer_lookup import CustomerContext
from promo_pricing.services.promotion_engine.allocation import apply_promotions
from promo_pricing.services.promotion_engine.eligibility import get_applicable_promotions
from promo_pricing.services.promotion_engine.line_items import LineItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    variant_id: int
    quantity: int
    unit_price: float
    category_id: Optional[int] = None
    unit_measure: float = 0.0
    is_urgent: bool = False
    urgent_delivery_fee: float = 0.0
    standard_delivery_days: int = 0
    urgent_delivery_days: Optional[int] = None

    @property
    def subtotal(self) -> float:
        return self.quantity * self.unit_price

    @property
    def urgent_fee_total(self) -> float:
        return self.urgent_delivery_fee * self.quantity

    @property
    def delivery_days(self) -> int:
        if self.is_urgent:
            return self.urgent_delivery_days or self.standard_delivery_days or 0
        return self.standard_delivery_days or 0

    def to_line_item(self) -> LineItem:
        return LineItem(
            variant_id=self.variant_id,
            quantity=self.quantity,
            subtotal=self.subtotal,
            unit_measure=self.unit_measure,
            category_id=self.category_id,
        )


@dataclass(frozen=True)
class PricingOutcome:
    success: bool
    message: str
    result: Optional[PricingResult] = None
    rejection: Optional[CouponRejected] = None


# ===================== LINE LOADING =====================


def lines_from_item(db: Session, item: DirectPurchaseItem) -> List[PricedLine]:
    row = (
        db.query(ProductVariant, Product)
        .join(Product, ProductVariant.product_id == Product.product_id)
        .filter(
            ProductVariant.variant_id == item.variant_id,
            Product.product_id == item.product_id,
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="Product or variant not found")

    variant, product = row
    if variant.stock < item.quantity:
        raise HTTPException(status_code=400, detail="Insufficient stock")

    urgent_fee = (
        float(product.urgent_delivery_cost or 0.0)
        if item.is_urgent and product.urgent_delivery_enabled
        else 0.0
    )
    return [
        PricedLine(
            product_id=product.product_id,
            variant_id=variant.variant_id,
            quantity=item.quantity,
            unit_price=float(variant.calculated_price),
            category_id=product.category_id,
            is_urgent=bool(item.is_urgent),
            urgent_delivery_fee=urgent_fee,
            standard_delivery_days=product.standard_delivery_days or 0,
            urgent_delivery_days=product.urgent_delivery_days,
        )
    ]


def lines_from_cart(db: Session, user_id: int) -> Tuple[List[PricedLine], int]:
    cart = (
        db.query(Cart)
        .options(
            selectinload(Cart.details)
            .selectinload(CartDetail.variant)
            .selectinload(ProductVariant.product)
        )
        .filter(Cart.user_id == user_id, Cart.status == "active")
        .first()
    )
    if not cart or not cart.details:
        raise HTTPException(status_code=400, detail="Cart is empty or not found")

    lines = []
    for detail in cart.details:
        product = detail.variant.product
        lines.append(
            PricedLine(
                product_id=detail.product_id,
                variant_id=detail.variant_id,
                quantity=detail.quantity,
                unit_price=float(detail.unit_price),
                category_id=product.category_id,
                unit_measure=float(detail.unit_measure or 0.0),
                is_urgent=bool(detail.is_urgent),
                urgent_delivery_fee=float(detail.urgent_delivery_fee or 0.0),
                standard_delivery_days=product.standard_delivery_days or 0,
                urgent_delivery_days=product.urgent_delivery_days,
            )
        )
    return lines, cart.cart_id


# ===================== TOTALS =====================


def resolve_shipping_cost(db: Session, delivery_option: Optional[str]) -> float:
    """
    Cost of the requested shipping option, falling back to the configured
    default option, then to the first active one. No options means free.
    """
    options = (
        db.query(ShippingOption)
        .filter(ShippingOption.status == RecordStatus.active.value)
        .order_by(ShippingOption.shipping_option_id.asc())
        .all()
    )
    if not options:
        return 0.0

    by_name = {o.name: o for o in options}
    selected = (
        by_name.get(delivery_option)
        or by_name.get(settings.DEFAULT_SHIPPING_OPTION)
        or options[0]
    )
    return float(selected.base_cost or 0.0)


def estimate_delivery_days(lines: Sequence[PricedLine], requested: Optional[int]) -> int:
    if requested is not None and requested >= 0:
        return requested
    return max([line.delivery_days for line in lines] + [0])


def compute_total(
    subtotal: float,
    shipping_cost: float,
    urgent_fee: float,
    total_discount: float,
) -> float:
    return max(0.0, subtotal + shipping_cost + urgent_fee - total_discount)


def _money(x: float) -> float:
    return round(float(x), 2)


def _automatic_entry(promotion: Promotion) -> AppliedPromotion:
    value = float(promotion.discount_value or 0.0)
    return AppliedPromotion(
        promotion_id=promotion.promotion_id,
        name=promotion.name,
        promotion_type=promotion.promotion_type,
        coupon_type=promotion.coupon_type,
        discount_value=value,
        is_applicable=True,
        progress_message=f"Promotion valid! {value:g}% off applies.",
    )


def _coupon_entry(application: CouponApplication) -> AppliedPromotion:
    promotion = application.promotion
    return AppliedPromotion(
        promotion_id=promotion.promotion_id,
        name=promotion.name,
        promotion_type=promotion.promotion_type,
        coupon_type=promotion.coupon_type,
        discount_value=float(promotion.discount_value or 0.0),
        is_applicable=True,
        progress_message=application.progress_message,
        coupon_id=application.coupon.coupon_id,
        code=application.coupon.code,
    )


# ===================== PRICING PASS =====================


def price_checkout(
    db: Session,
    request: PricingRequest,
    user_id: int,
    record_usage: bool = True,
) -> PricingOutcome:
    """
    Price a cart or a single item for `user_id`.

    With `record_usage=False` the pass is a quote: the coupon is validated
    and its discount shown, but no usage row is written.
    """
    with UnitOfWork(db) as uow:
        session = uow.session

        cart_id = None
        if request.item is not None:
            lines = lines_from_item(session, request.item)
        else:
            lines, cart_id = lines_from_cart(session, user_id)

        subtotal = sum(line.subtotal for line in lines)
        total_urgent_fee = sum(line.urgent_fee_total for line in lines)
        delivery_days = estimate_delivery_days(lines, request.estimated_delivery_days)
        shipping_cost = resolve_shipping_cost(session, request.delivery_option)

        line_items = [line.to_line_item() for line in lines]
        customer = CustomerContext.for_session(session, user_id)

        automatic = get_applicable_promotions(session, line_items, customer)
        allocation = apply_promotions(line_items, automatic)
        total_discount = allocation.total_discount
        applied = [_automatic_entry(p) for p in automatic]

        coupon_code = request.coupon_code
        coupon_applied = False
        if coupon_code:
            resolution = resolve_coupon(
                uow, coupon_code, line_items, subtotal, automatic, customer
            )
            if isinstance(resolution, CouponRejected):
                uow.rollback()
                return PricingOutcome(
                    success=False,
                    message=resolution.message,
                    rejection=resolution,
                )

            if resolution.free_shipping:
                shipping_cost = 0.0
            total_discount += resolution.discount
            applied.append(_coupon_entry(resolution))
            coupon_applied = True

            if record_usage:
                record_coupon_usage(uow, resolution, user_id, cart_id=cart_id)

        total = compute_total(subtotal, shipping_cost, total_urgent_fee, total_discount)

        result = PricingResult(
            subtotal=_money(subtotal),
            total=_money(total),
            total_discount=_money(total_discount),
            shipping_cost=_money(shipping_cost),
            total_urgent_delivery_fee=_money(total_urgent_fee),
            estimated_delivery_days=delivery_days,
            applied_promotions=applied,
            coupon_code=coupon_code,
        )

    if coupon_applied:
        message = f"Coupon {coupon_code} applied successfully"
    else:
        message = "Pricing calculated"
    return PricingOutcome(success=True, message=message, result=result)


def active_cart_line_items(db: Session, user_id: int) -> List[LineItem]:
    """Line items of the user's active cart; empty when there is no cart."""
    try:
        lines, _ = lines_from_cart(db, user_id)
    except HTTPException:
        return []
    return [line.to_line_item() for line in lines]
