from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from promo_pricing.database.connection import get_db
from promo_pricing.schemas.coupon import CouponUsageSummary
from promo_pricing.services.analytics_service import get_coupon_usage_summary
from promo_pricing.dependencies.auth import require_admin

router = APIRouter(prefix="/analytics", tags=["Analytics & Reporting"])


@router.get("/coupons/{coupon_id}/usage", response_model=CouponUsageSummary, dependencies=[Depends(require_admin)])
def coupon_usage(
    coupon_id: int,
    db: Session = Depends(get_db),
):
    return get_coupon_usage_summary(db, coupon_id)
