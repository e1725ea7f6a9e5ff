from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from promo_pricing.database.connection import get_db
from promo_pricing.dependencies.auth import require_auth
from promo_pricing.models.user import User
from promo_pricing.schemas.pricing import PricingRequest, PricingResponse
from promo_pricing.services.checkout_pricing import price_checkout

router = APIRouter(prefix="/pricing", tags=["Pricing & Calculation"])


@router.post("/quote", response_model=PricingResponse)
def quote_route(
    body: PricingRequest,
    user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    """
    Same totals as /coupons/apply, coupon optional, nothing recorded.
    """
    outcome = price_checkout(db, body, user.user_id, record_usage=False)
    return PricingResponse(
        success=outcome.success,
        message=outcome.message,
        data=outcome.result,
    )
