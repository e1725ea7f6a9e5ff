import logging
from time import perf_counter
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from promo_pricing.core.config import settings
from promo_pricing.database.connection import get_db
from promo_pricing.dependencies.auth import require_admin, require_auth
from promo_pricing.middleware.metrics import incr
from promo_pricing.models.user import User
from promo_pricing.schemas.coupon import CouponCreate, CouponResponse
from promo_pricing.schemas.pricing import ApplyCouponRequest, PricingResponse
from promo_pricing.services.checkout_pricing import price_checkout
from promo_pricing.services.coupon_service import (
    create_coupon,
    deactivate_coupon,
    list_coupons,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/coupons", tags=["Coupons"])


# ---------- APPLY COUPON ----------

@router.post("/apply", response_model=PricingResponse)
def apply_coupon_route(
    body: ApplyCouponRequest,
    request: Request,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """
    Price the user's cart (or a single item) with the given coupon.

    A coupon that cannot be used is not an error: the response is 200 with
    success=false and the reason in `message`.
    """
    start = perf_counter()
    outcome = price_checkout(db, body, user.user_id, record_usage=True)
    duration_ms = (perf_counter() - start) * 1000.0

    if duration_ms > settings.SLOW_PRICING_MS:
        logger.warning(
            "Coupon pricing for user %s took %.2f ms", user.user_id, duration_ms
        )

    incr(request.app, "coupons_applied" if outcome.success else "coupons_rejected")
    return PricingResponse(
        success=outcome.success,
        message=outcome.message,
        data=outcome.result,
    )


# ---------- ADMIN ----------

@router.post("/", response_model=CouponResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_coupon_route(data: CouponCreate, db: Session = Depends(get_db)):
    return create_coupon(db, data)


@router.get("/", response_model=List[CouponResponse], dependencies=[Depends(require_admin)])
def list_coupons_route(status: Optional[str] = None, db: Session = Depends(get_db)):
    return list_coupons(db, status=status)


@router.delete("/{coupon_id}", response_model=CouponResponse, dependencies=[Depends(require_admin)])
def deactivate_coupon_route(coupon_id: int, db: Session = Depends(get_db)):
    coupon = deactivate_coupon(db, coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")
    return coupon
