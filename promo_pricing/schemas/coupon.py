from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class CouponCreate(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    promotion_id: int

    @field_validator("code")
    @classmethod
    def _strip_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("code is required")
        return v


class CouponResponse(BaseModel):
    coupon_id: int
    code: str
    promotion_id: int
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class CouponUsageSummary(BaseModel):
    coupon_id: int
    code: str
    promotion_id: int
    total_uses: int
    unique_users: int
    last_applied_at: Optional[datetime] = None
