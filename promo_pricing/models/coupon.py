from datetime import datetime
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from promo_pricing.database.connection import Base


class Coupon(Base):
    __tablename__ = "coupons"

    coupon_id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # case-sensitive
    promotion_id = Column(
        Integer, ForeignKey("promotions.promotion_id"), nullable=False, index=True
    )
    status = Column(String, nullable=False, default="active")  # active/inactive
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    promotion = relationship("Promotion", back_populates="coupons")
    usages = relationship("CouponUsage", back_populates="coupon")


class CouponUsage(Base):
    """Append-only redemption ledger. Rows are inserted, never updated."""

    __tablename__ = "coupon_usages"
    __table_args__ = (
        Index("ix_coupon_usages_user_promotion", "user_id", "promotion_id"),
    )

    usage_id = Column(Integer, primary_key=True, index=True)
    promotion_id = Column(
        Integer, ForeignKey("promotions.promotion_id"), nullable=False
    )
    coupon_id = Column(
        Integer, ForeignKey("coupons.coupon_id"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.user_id"), nullable=False)
    cart_id = Column(Integer, ForeignKey("carts.cart_id"), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.order_id"), nullable=True)
    applied_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    coupon = relationship("Coupon", back_populates="usages")
