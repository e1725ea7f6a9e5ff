from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, StrictBool, StrictInt, field_validator, model_validator


class DirectPurchaseItem(BaseModel):
    """A "buy now" item priced without going through the cart."""
    product_id: StrictInt
    variant_id: StrictInt
    quantity: StrictInt = Field(gt=0)
    option_id: Optional[StrictInt] = None
    is_urgent: StrictBool = False


class PricingRequest(BaseModel):
    cart: Optional[Dict[str, Any]] = None
    item: Optional[DirectPurchaseItem] = None
    estimated_delivery_days: Optional[StrictInt] = Field(default=None, ge=0)
    delivery_option: Optional[str] = None
    coupon_code: Optional[str] = None

    @field_validator("coupon_code")
    @classmethod
    def _strip_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    @model_validator(mode="after")
    def _cart_or_item(self):
        if self.cart is None and self.item is None:
            raise ValueError("Either cart or item is required")
        return self


class ApplyCouponRequest(PricingRequest):
    coupon_code: str = Field(min_length=1)

    @field_validator("coupon_code")
    @classmethod
    def _strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("coupon_code is required")
        return v


class AppliedPromotion(BaseModel):
    promotion_id: int
    name: str
    promotion_type: Optional[str] = None
    coupon_type: Optional[str] = None
    discount_value: float
    is_applicable: bool = True
    progress_message: str
    coupon_id: Optional[int] = None
    code: Optional[str] = None


class PricingResult(BaseModel):
    subtotal: float
    total: float
    total_discount: float
    shipping_cost: float
    total_urgent_delivery_fee: float
    estimated_delivery_days: int
    applied_promotions: List[AppliedPromotion] = []
    coupon_code: Optional[str] = None


class PricingResponse(BaseModel):
    success: bool
    message: str
    data: Optional[PricingResult] = None
