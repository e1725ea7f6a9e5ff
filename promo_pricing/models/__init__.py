# Importing this package registers every table on Base.metadata.
from promo_pricing.models.user import User, ClientCluster
from promo_pricing.models.catalog import Category, Product, ProductVariant
from promo_pricing.models.cart import Cart, CartDetail, ShippingOption
from promo_pricing.models.order import Order
from promo_pricing.models.promotion import Promotion, PromotionProduct, PromotionCategory
from promo_pricing.models.coupon import Coupon, CouponUsage

__all__ = [
    "User",
    "ClientCluster",
    "Category",
    "Product",
    "ProductVariant",
    "Cart",
    "CartDetail",
    "ShippingOption",
    "Order",
    "Promotion",
    "PromotionProduct",
    "PromotionCategory",
    "Coupon",
    "CouponUsage",
]
