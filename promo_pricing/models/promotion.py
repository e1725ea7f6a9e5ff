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


class Promotion(Base):
    __tablename__ = "promotions"

    promotion_id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    # quantity_discount / order_count_discount / unit_discount / offer / promotion / coupon
    promotion_type = Column(String, nullable=False, index=True)
    # percentage_discount / fixed_discount / free_shipping
    coupon_type = Column(String, nullable=False, default="percentage_discount")
    discount_value = Column(Float, nullable=False, default=0.0)
    # all / specific_products / specific_categories
    applies_to = Column(String, nullable=False, default="all")
    is_exclusive = Column(Boolean, nullable=False, default=False)

    # only the threshold matching promotion_type is kept
    min_quantity = Column(Integer, nullable=True)
    min_order_count = Column(Integer, nullable=True)
    min_unit_measure = Column(Float, nullable=True)

    # stored for reporting, not enforced by the pricing engine
    usage_limit = Column(Integer, nullable=True)
    usage_limit_per_customer = Column(Integer, nullable=True)

    cluster_id = Column(Integer, nullable=True)
    restrict_to_cluster = Column(Boolean, nullable=False, default=False)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    status = Column(String, nullable=False, default="active", index=True)  # active/inactive
    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    products = relationship(
        "PromotionProduct",
        back_populates="promotion",
        cascade="all, delete-orphan",
    )
    categories = relationship(
        "PromotionCategory",
        back_populates="promotion",
        cascade="all, delete-orphan",
    )
    coupons = relationship("Coupon", back_populates="promotion")

    @property
    def variant_ids(self) -> list:
        return [p.variant_id for p in self.products]

    @property
    def category_ids(self) -> list:
        return [c.category_id for c in self.categories]


class PromotionProduct(Base):
    __tablename__ = "promotion_products"

    promotion_product_id = Column(Integer, primary_key=True, index=True)
    promotion_id = Column(
        Integer, ForeignKey("promotions.promotion_id"), nullable=False, index=True
    )
    variant_id = Column(
        Integer, ForeignKey("product_variants.variant_id"), nullable=False, index=True
    )
    promotion = relationship("Promotion", back_populates="products")


class PromotionCategory(Base):
    __tablename__ = "promotion_categories"

    promotion_category_id = Column(Integer, primary_key=True, index=True)
    promotion_id = Column(
        Integer, ForeignKey("promotions.promotion_id"), nullable=False, index=True
    )
    category_id = Column(
        Integer, ForeignKey("categories.category_id"), nullable=False, index=True
    )
    promotion = relationship("Promotion", back_populates="categories")
