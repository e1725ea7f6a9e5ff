import pytest
from fastapi import HTTPException

from promo_pricing.models import Order, ShippingOption
from promo_pricing.schemas.pricing import DirectPurchaseItem, PricingRequest
from promo_pricing.services.checkout_pricing import (
    active_cart_line_items,
    compute_total,
    estimate_delivery_days,
    price_checkout,
    resolve_shipping_cost,
)


def _item(variant, quantity=1, is_urgent=False):
    return DirectPurchaseItem(
        product_id=variant.product_id,
        variant_id=variant.variant_id,
        quantity=quantity,
        is_urgent=is_urgent,
    )


def test_total_is_never_negative():
    assert compute_total(10.0, 0.0, 0.0, 50.0) == 0.0
    assert compute_total(100.0, 10.0, 5.0, 15.0) == 100.0


def test_cart_with_automatic_quantity_promotion(db, user, catalog, make_cart, make_promotion):
    make_cart([(catalog.cotton_white, 2)])
    make_promotion(name="Buy 2", promotion_type="quantity_discount", min_quantity=2)

    outcome = price_checkout(db, PricingRequest(cart={}), user.user_id)

    assert outcome.success is True
    assert outcome.message == "Pricing calculated"
    assert outcome.result.subtotal == 200.0
    assert outcome.result.total_discount == 20.0
    assert outcome.result.total == 180.0
    assert outcome.result.applied_promotions[0].name == "Buy 2"


def test_order_count_promotion_uses_delivered_orders(db, user, catalog, make_cart, make_promotion):
    make_cart([(catalog.cotton_white, 1)])
    make_promotion(name="Loyal", promotion_type="order_count_discount", min_order_count=2)

    assert price_checkout(db, PricingRequest(cart={}), user.user_id).result.total_discount == 0.0

    db.add_all([
        Order(user_id=user.user_id, order_status="delivered", total=10.0),
        Order(user_id=user.user_id, order_status="delivered", total=10.0),
        Order(user_id=user.user_id, order_status="cancelled", total=10.0),
    ])
    db.commit()

    assert price_checkout(db, PricingRequest(cart={}), user.user_id).result.total_discount == 10.0


def test_cart_urgent_fee_is_added_outside_subtotal(db, user, catalog, make_cart):
    make_cart([
        (catalog.cotton_white, 2, {"is_urgent": True, "urgent_delivery_fee": 5.0}),
    ])

    result = price_checkout(db, PricingRequest(cart={}), user.user_id).result

    assert result.subtotal == 200.0
    assert result.total_urgent_delivery_fee == 10.0
    assert result.total == 210.0
    assert result.estimated_delivery_days == 1


def test_direct_item_urgent_fee_only_when_product_allows_it(db, user, catalog):
    urgent = price_checkout(
        db, PricingRequest(item=_item(catalog.cotton_white, 2, is_urgent=True)), user.user_id
    ).result
    assert urgent.total_urgent_delivery_fee == 10.0
    assert urgent.total == 210.0

    not_offered = price_checkout(
        db, PricingRequest(item=_item(catalog.scissors_std, 1, is_urgent=True)), user.user_id
    ).result
    assert not_offered.total_urgent_delivery_fee == 0.0
    assert not_offered.estimated_delivery_days == 5


def test_requested_delivery_days_win(db, user, catalog):
    request = PricingRequest(item=_item(catalog.cotton_white), estimated_delivery_days=9)
    assert price_checkout(db, request, user.user_id).result.estimated_delivery_days == 9


def test_direct_item_stock_and_existence(db, user, catalog):
    with pytest.raises(HTTPException) as stock:
        price_checkout(db, PricingRequest(item=_item(catalog.scissors_std, 4)), user.user_id)
    assert stock.value.status_code == 400
    assert stock.value.detail == "Insufficient stock"

    missing = DirectPurchaseItem(product_id=catalog.cotton.product_id, variant_id=9999, quantity=1)
    with pytest.raises(HTTPException) as not_found:
        price_checkout(db, PricingRequest(item=missing), user.user_id)
    assert not_found.value.status_code == 404


def test_empty_cart_is_an_error(db, user):
    with pytest.raises(HTTPException) as exc:
        price_checkout(db, PricingRequest(cart={}), user.user_id)
    assert exc.value.status_code == 400
    assert exc.value.detail == "Cart is empty or not found"
    assert active_cart_line_items(db, user.user_id) == []


def test_shipping_option_fallbacks(db):
    assert resolve_shipping_cost(db, "Express") == 0.0

    db.add(ShippingOption(name="Courier", base_cost=12.0))
    db.commit()
    assert resolve_shipping_cost(db, None) == 12.0

    db.add_all([
        ShippingOption(name="Store Pickup", base_cost=0.0),
        ShippingOption(name="Express", base_cost=20.0),
        ShippingOption(name="Drone", base_cost=99.0, status="inactive"),
    ])
    db.commit()
    assert resolve_shipping_cost(db, "Express") == 20.0
    assert resolve_shipping_cost(db, "Teleport") == 0.0
    assert resolve_shipping_cost(db, "Drone") == 0.0


def test_estimate_delivery_days_without_lines():
    assert estimate_delivery_days([], None) == 0
