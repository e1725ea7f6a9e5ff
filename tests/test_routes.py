from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from promo_pricing.core.security import create_access_token, decode_access_token
from promo_pricing.database.connection import get_db
from promo_pricing.dependencies.auth import get_current_user
from promo_pricing.main import app
from promo_pricing.models import CouponUsage


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def as_user(user):
    app.dependency_overrides[get_current_user] = lambda: user
    return user


@pytest.fixture()
def as_admin(admin):
    app.dependency_overrides[get_current_user] = lambda: admin
    return admin


@pytest.fixture()
def cart(make_cart, catalog):
    return make_cart([(catalog.cotton_white, 2)])


# ---------- COUPONS ----------

def test_apply_coupon_success(client, as_user, cart, make_coupon, db):
    make_coupon("SAVE10")

    res = client.post("/coupons/apply", json={"cart": {}, "coupon_code": "SAVE10"})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["message"] == "Coupon SAVE10 applied successfully"
    assert body["data"]["total"] == 180.0
    assert db.query(CouponUsage).count() == 1


def test_rejected_coupon_is_still_200(client, as_user, cart):
    res = client.post("/coupons/apply", json={"cart": {}, "coupon_code": "NOPE"})

    assert res.status_code == 200
    assert res.json() == {
        "success": False,
        "message": "Coupon NOPE is invalid or inactive",
        "data": None,
    }


def test_apply_requires_coupon_code(client, as_user, cart):
    res = client.post("/coupons/apply", json={"cart": {}})

    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Validation errors"
    assert body["errors"]


def test_pricing_request_needs_cart_or_item(client, as_user):
    res = client.post("/pricing/quote", json={"coupon_code": "SAVE10"})
    assert res.status_code == 400


def test_empty_cart_returns_error_envelope(client, as_user):
    res = client.post("/pricing/quote", json={"cart": {}})
    assert res.status_code == 400
    assert res.json()["message"] == "Cart is empty or not found"


def test_quote_does_not_record_usage(client, as_user, cart, make_coupon, db):
    make_coupon("SAVE10")

    res = client.post("/pricing/quote", json={"cart": {}, "coupon_code": "SAVE10"})

    assert res.status_code == 200
    assert res.json()["data"]["total_discount"] == 20.0
    assert db.query(CouponUsage).count() == 0


def test_coupon_endpoints_require_a_token(client):
    res = client.post("/coupons/apply", json={"cart": {}, "coupon_code": "SAVE10"})
    assert res.status_code == 401


# ---------- ADMIN ----------

def _promotion_body(**overrides):
    now = datetime.utcnow()
    body = {
        "name": "Bulk cotton",
        "promotion_type": "quantity_discount",
        "discount_value": 10,
        "min_quantity": 3,
        "start_date": (now - timedelta(hours=1)).isoformat(),
        "end_date": (now + timedelta(days=1)).isoformat(),
    }
    body.update(overrides)
    return body


def test_admin_promotion_crud(client, as_admin):
    created = client.post("/promotions/", json=_promotion_body())
    assert created.status_code == 201
    promotion_id = created.json()["promotion_id"]

    page = client.get("/promotions/", params={"page": 1, "page_size": 5})
    assert page.status_code == 200
    assert page.json()["total"] == 1

    updated = client.put(f"/promotions/{promotion_id}", json=_promotion_body(name="Renamed"))
    assert updated.json()["name"] == "Renamed"

    deleted = client.delete(f"/promotions/{promotion_id}")
    assert deleted.json()["status"] == "inactive"
    assert client.get(f"/promotions/{promotion_id}").status_code == 404


def test_invalid_sort_is_400(client, as_admin):
    res = client.get("/promotions/", params={"sort": "hacker:asc"})
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_non_admin_cannot_manage_promotions(client, as_user):
    res = client.post("/promotions/", json=_promotion_body())
    assert res.status_code == 403


def test_admin_coupon_lifecycle_and_usage_report(client, as_admin, make_promotion):
    promotion = make_promotion()

    created = client.post("/coupons/", json={"code": "WELCOME", "promotion_id": promotion.promotion_id})
    assert created.status_code == 201
    coupon_id = created.json()["coupon_id"]

    assert client.post(
        "/coupons/", json={"code": "WELCOME", "promotion_id": promotion.promotion_id}
    ).status_code == 400

    usage = client.get(f"/analytics/coupons/{coupon_id}/usage")
    assert usage.status_code == 200
    assert usage.json()["total_uses"] == 0

    assert client.delete(f"/coupons/{coupon_id}").json()["status"] == "inactive"
    assert client.get("/analytics/coupons/9999/usage").status_code == 404


# ---------- STOREFRONT ----------

def test_available_promotions_show_progress(client, as_user, cart, make_promotion):
    make_promotion(name="Buy 3", promotion_type="quantity_discount", min_quantity=3)

    res = client.get("/promotions/available")

    assert res.status_code == 200
    [entry] = res.json()
    assert entry["is_applicable"] is False
    assert entry["progress_message"] == "Add 1 more items to get 10% off (buy ≥3 items)."


# ---------- SYSTEM ----------

def test_health(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json()["db_ok"] is True


def test_metrics_counts_coupon_outcomes(client, user, admin, cart, make_coupon):
    make_coupon("SAVE10")
    app.dependency_overrides[get_current_user] = lambda: admin
    before = client.get("/metrics").json()

    app.dependency_overrides[get_current_user] = lambda: user
    client.post("/coupons/apply", json={"cart": {}, "coupon_code": "NOPE"})
    client.post("/coupons/apply", json={"cart": {}, "coupon_code": "SAVE10"})

    app.dependency_overrides[get_current_user] = lambda: admin
    after = client.get("/metrics").json()
    assert after["coupons_rejected"] == before["coupons_rejected"] + 1
    assert after["coupons_applied"] == before["coupons_applied"] + 1
    assert after["total_coupon_uses"] == 1
    assert after["active_coupons"] == 1


# ---------- TOKENS ----------

def test_access_token_round_trip():
    token = create_access_token({"sub": 42, "role": "admin"})
    data = decode_access_token(token)
    assert data.user_id == 42
    assert data.role == "admin"
    assert decode_access_token("garbage").user_id is None
