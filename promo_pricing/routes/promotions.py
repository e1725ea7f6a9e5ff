from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from promo_pricing.database.connection import get_db
from promo_pricing.dependencies.auth import require_admin, require_auth
from promo_pricing.models.user import User
from promo_pricing.schemas.promotion import (
    PromotionCreate,
    PromotionPage,
    PromotionProgress,
    PromotionResponse,
    PromotionUpdate,
)
from promo_pricing.services.checkout_pricing import active_cart_line_items
from promo_pricing.services.customer_lookup import CustomerContext
from promo_pricing.services.promotion_service import (
    create_promotion,
    deactivate_promotion,
    get_promotion,
    list_promotion_progress,
    list_promotions,
    update_promotion,
)

router = APIRouter(prefix="/promotions", tags=["Promotions"])


# CREATE
@router.post("/", response_model=PromotionResponse, status_code=201)
def create_route(
    data: PromotionCreate,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return create_promotion(db, data, created_by=admin.user_id)


# LIST (active, in window)
@router.get("/", response_model=PromotionPage, dependencies=[Depends(require_admin)])
def list_route(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    sort: Optional[str] = None,
    db: Session = Depends(get_db),
):
    total, rows = list_promotions(db, page=page, page_size=page_size, search=search, sort=sort)
    return PromotionPage(
        total=total,
        page=page,
        page_size=page_size,
        items=[PromotionResponse.model_validate(p) for p in rows],
    )


# AVAILABLE FOR THE CURRENT USER'S CART
@router.get("/available", response_model=List[PromotionProgress])
def available_route(
    user: User = Depends(require_auth),
    db: Session = Depends(get_db),
):
    line_items = active_cart_line_items(db, user.user_id)
    customer = CustomerContext.for_session(db, user.user_id)
    return list_promotion_progress(db, line_items, customer)


# GET BY ID
@router.get("/{promotion_id}", response_model=PromotionResponse, dependencies=[Depends(require_admin)])
def get_route(promotion_id: int, db: Session = Depends(get_db)):
    promotion = get_promotion(db, promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found or inactive")
    return promotion


# UPDATE
@router.put("/{promotion_id}", response_model=PromotionResponse, dependencies=[Depends(require_admin)])
def update_route(promotion_id: int, data: PromotionUpdate, db: Session = Depends(get_db)):
    promotion = update_promotion(db, promotion_id, data)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion


# DEACTIVATE (logical delete)
@router.delete("/{promotion_id}", response_model=PromotionResponse, dependencies=[Depends(require_admin)])
def deactivate_route(promotion_id: int, db: Session = Depends(get_db)):
    promotion = deactivate_promotion(db, promotion_id)
    if not promotion:
        raise HTTPException(status_code=404, detail="Promotion not found")
    return promotion
