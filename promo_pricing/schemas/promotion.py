from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from promo_pricing.enums.promotion import AppliesTo, CouponType, PromotionType, RecordStatus


class PromotionBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    promotion_type: PromotionType
    coupon_type: CouponType = CouponType.percentage_discount
    discount_value: float = Field(ge=0)
    applies_to: AppliesTo = AppliesTo.all
    is_exclusive: bool = False
    min_quantity: Optional[int] = Field(default=None, ge=1)
    min_order_count: Optional[int] = Field(default=None, ge=1)
    min_unit_measure: Optional[float] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=1)
    usage_limit_per_customer: Optional[int] = Field(default=None, ge=1)
    cluster_id: Optional[int] = None
    restrict_to_cluster: bool = False
    start_date: datetime
    end_date: datetime

    @model_validator(mode="after")
    def _check_consistency(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        if self.coupon_type == CouponType.percentage_discount and self.discount_value > 100:
            raise ValueError("percentage discount_value must be between 0 and 100")
        if self.restrict_to_cluster and self.cluster_id is None:
            raise ValueError("cluster_id is required when restrict_to_cluster is set")
        return self


class PromotionCreate(PromotionBase):
    variant_ids: List[int] = []
    category_ids: List[int] = []


class PromotionUpdate(PromotionCreate):
    status: RecordStatus = RecordStatus.active


class PromotionResponse(BaseModel):
    promotion_id: int
    name: str
    promotion_type: str
    coupon_type: str
    discount_value: float
    applies_to: str
    is_exclusive: bool
    min_quantity: Optional[int] = None
    min_order_count: Optional[int] = None
    min_unit_measure: Optional[float] = None
    usage_limit: Optional[int] = None
    usage_limit_per_customer: Optional[int] = None
    cluster_id: Optional[int] = None
    restrict_to_cluster: bool
    start_date: datetime
    end_date: datetime
    status: str
    created_by: Optional[int] = None
    variant_ids: List[int] = []
    category_ids: List[int] = []

    class Config:
        from_attributes = True


class PromotionPage(BaseModel):
    total: int
    page: int
    page_size: int
    items: List[PromotionResponse]


class PromotionProgress(BaseModel):
    promotion_id: int
    name: str
    promotion_type: str
    discount_value: float
    is_applicable: bool
    progress_message: str
