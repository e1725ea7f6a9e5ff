import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from promo_pricing.database.connection import Base
from promo_pricing.models import (
    Cart,
    CartDetail,
    Category,
    Coupon,
    Product,
    ProductVariant,
    Promotion,
    PromotionCategory,
    PromotionProduct,
    User,
)

TEST_DB_URL = "sqlite:///:memory:"


@pytest.fixture()
def db():
    # fresh database per test: pricing passes commit and roll back on their own
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def user(db):
    shopper = User(username="shopper", email="shopper@example.com", hashed_password="x")
    db.add(shopper)
    db.commit()
    db.refresh(shopper)
    return shopper


@pytest.fixture()
def admin(db):
    boss = User(username="boss", hashed_password="x", role="admin")
    db.add(boss)
    db.commit()
    db.refresh(boss)
    return boss


@pytest.fixture()
def catalog(db):
    """Two categories, two products, one variant each."""
    fabrics = Category(name="Fabrics")
    tools = Category(name="Tools")
    db.add_all([fabrics, tools])
    db.flush()

    cotton = Product(
        name="Cotton",
        category_id=fabrics.category_id,
        standard_delivery_days=3,
        urgent_delivery_enabled=True,
        urgent_delivery_days=1,
        urgent_delivery_cost=5.0,
    )
    scissors = Product(
        name="Scissors",
        category_id=tools.category_id,
        standard_delivery_days=5,
        urgent_delivery_enabled=False,
        urgent_delivery_cost=9.0,
    )
    db.add_all([cotton, scissors])
    db.flush()

    cotton_white = ProductVariant(
        product_id=cotton.product_id, sku="COT-W", calculated_price=100.0, stock=50
    )
    scissors_std = ProductVariant(
        product_id=scissors.product_id, sku="SCI-1", calculated_price=50.0, stock=3
    )
    db.add_all([cotton_white, scissors_std])
    db.commit()

    return SimpleNamespace(
        fabrics=fabrics,
        tools=tools,
        cotton=cotton,
        scissors=scissors,
        cotton_white=cotton_white,
        scissors_std=scissors_std,
    )


@pytest.fixture()
def make_promotion(db):
    def _make(variant_ids=(), category_ids=(), **overrides) -> Promotion:
        now = datetime.utcnow()
        fields = dict(
            name="Promo",
            promotion_type="coupon",
            coupon_type="percentage_discount",
            discount_value=10.0,
            applies_to="all",
            is_exclusive=False,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=1),
            status="active",
        )
        fields.update(overrides)
        promotion = Promotion(**fields)
        db.add(promotion)
        db.flush()
        for variant_id in variant_ids:
            db.add(PromotionProduct(promotion_id=promotion.promotion_id, variant_id=variant_id))
        for category_id in category_ids:
            db.add(PromotionCategory(promotion_id=promotion.promotion_id, category_id=category_id))
        db.commit()
        db.refresh(promotion)
        return promotion

    return _make


@pytest.fixture()
def make_coupon(db, make_promotion):
    def _make(
        code: str, status: str = "active", promotion_status: str = "active", **promotion_fields
    ) -> Coupon:
        promotion = make_promotion(status=promotion_status, **promotion_fields)
        coupon = Coupon(code=code, promotion_id=promotion.promotion_id, status=status)
        db.add(coupon)
        db.commit()
        db.refresh(coupon)
        return coupon

    return _make


@pytest.fixture()
def make_cart(db, user):
    """make_cart([(variant, quantity), ...]) or with a dict of CartDetail extras."""
    def _make(lines) -> Cart:
        cart = Cart(user_id=user.user_id, status="active")
        db.add(cart)
        db.flush()
        for line in lines:
            variant, quantity = line[0], line[1]
            extra = line[2] if len(line) > 2 else {}
            db.add(
                CartDetail(
                    cart_id=cart.cart_id,
                    product_id=variant.product_id,
                    variant_id=variant.variant_id,
                    quantity=quantity,
                    unit_price=extra.get("unit_price", variant.calculated_price),
                    unit_measure=extra.get("unit_measure", 0.0),
                    is_urgent=extra.get("is_urgent", False),
                    urgent_delivery_fee=extra.get("urgent_delivery_fee", 0.0),
                )
            )
        db.commit()
        db.refresh(cart)
        return cart

    return _make
