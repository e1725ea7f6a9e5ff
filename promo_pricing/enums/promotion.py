from enum import Enum


class PromotionType(str, Enum):
    quantity_discount = "quantity_discount"
    order_count_discount = "order_count_discount"
    unit_discount = "unit_discount"
    offer = "offer"
    promotion = "promotion"
    coupon = "coupon"


class CouponType(str, Enum):
    percentage_discount = "percentage_discount"
    fixed_discount = "fixed_discount"
    free_shipping = "free_shipping"


class AppliesTo(str, Enum):
    all = "all"
    specific_products = "specific_products"
    specific_categories = "specific_categories"


class RecordStatus(str, Enum):
    active = "active"
    inactive = "inactive"
