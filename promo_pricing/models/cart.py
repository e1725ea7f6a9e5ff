from datetime import datetime
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from promo_pricing.database.connection import Base


class Cart(Base):
    __tablename__ = "carts"

    cart_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="active", index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    details = relationship(
        "CartDetail",
        back_populates="cart",
        cascade="all, delete-orphan",
    )


class CartDetail(Base):
    __tablename__ = "cart_details"

    cart_detail_id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.cart_id"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.product_id"), nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.variant_id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Float, nullable=False)
    unit_measure = Column(Float, nullable=False, default=0.0)
    is_urgent = Column(Boolean, nullable=False, default=False)
    urgent_delivery_fee = Column(Float, nullable=False, default=0.0)

    cart = relationship("Cart", back_populates="details")
    variant = relationship("ProductVariant")


class ShippingOption(Base):
    __tablename__ = "shipping_options"

    shipping_option_id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    base_cost = Column(Float, nullable=False, default=0.0)
    status = Column(String, nullable=False, default="active")
