import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from fastapi import HTTPException
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from promo_pricing.enums.promotion import AppliesTo, PromotionType, RecordStatus
from promo_pricing.models.promotion import Promotion, PromotionCategory, PromotionProduct
from promo_pricing.schemas.promotion import PromotionCreate, PromotionProgress, PromotionUpdate
from promo_pricing.services.customer_lookup import CustomerContext
from promo_pricing.services.promotion_engine.eligibility import (
    get_active_promotions,
    get_promotion_progress,
    rule_for,
)
from promo_pricing.services.promotion_engine.line_items import LineItem

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = ("promotion_id", "start_date", "end_date", "discount_value", "created_at")


def _threshold_fields(data: PromotionCreate) -> dict:
    """Keep only the threshold selected by promotion_type."""
    return {
        "min_quantity": data.min_quantity
        if data.promotion_type == PromotionType.quantity_discount else None,
        "min_order_count": data.min_order_count
        if data.promotion_type == PromotionType.order_count_discount else None,
        "min_unit_measure": data.min_unit_measure
        if data.promotion_type == PromotionType.unit_discount else None,
    }


def _scope_rows(promotion_id: int, data: PromotionCreate):
    if data.applies_to == AppliesTo.specific_products:
        return [
            PromotionProduct(promotion_id=promotion_id, variant_id=variant_id)
            for variant_id in dict.fromkeys(data.variant_ids)
        ]
    if data.applies_to == AppliesTo.specific_categories:
        return [
            PromotionCategory(promotion_id=promotion_id, category_id=category_id)
            for category_id in dict.fromkeys(data.category_ids)
        ]
    return []


def _base_fields(data: PromotionCreate) -> dict:
    return {
        "name": data.name,
        "promotion_type": data.promotion_type.value,
        "coupon_type": data.coupon_type.value,
        "discount_value": data.discount_value,
        "applies_to": data.applies_to.value,
        "is_exclusive": data.is_exclusive,
        "usage_limit": data.usage_limit,
        "usage_limit_per_customer": data.usage_limit_per_customer,
        "cluster_id": data.cluster_id,
        "restrict_to_cluster": data.restrict_to_cluster,
        "start_date": data.start_date,
        "end_date": data.end_date,
        **_threshold_fields(data),
    }


# ---------- CREATE ----------

def create_promotion(
    db: Session, data: PromotionCreate, created_by: Optional[int] = None
) -> Promotion:
    promotion = Promotion(
        **_base_fields(data),
        status=RecordStatus.active.value,
        created_by=created_by,
    )
    db.add(promotion)
    db.flush()

    for row in _scope_rows(promotion.promotion_id, data):
        db.add(row)

    db.commit()
    db.refresh(promotion)
    logger.info("Created promotion %s (%s)", promotion.promotion_id, promotion.promotion_type)
    return promotion


# ---------- READ ----------

def _parse_sort(sort: Optional[str]):
    if not sort:
        return [Promotion.promotion_id.asc()]

    order = []
    for part in sort.split(","):
        column, _, direction = part.strip().partition(":")
        if column not in SORTABLE_COLUMNS:
            raise HTTPException(
                status_code=400,
                detail=f"Invalid sort column: {column}. Use: {', '.join(SORTABLE_COLUMNS)}",
            )
        direction = (direction or "asc").lower()
        if direction not in ("asc", "desc"):
            raise HTTPException(
                status_code=400,
                detail=f"Invalid sort direction: {direction}. Use: asc or desc",
            )
        attr = getattr(Promotion, column)
        order.append(attr.asc() if direction == "asc" else attr.desc())
    return order


def list_promotions(
    db: Session,
    page: int = 1,
    page_size: int = 10,
    search: Optional[str] = None,
    sort: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[int, List[Promotion]]:
    """Active, in-window promotions, paginated."""
    now = now or datetime.utcnow()
    query = db.query(Promotion).filter(
        Promotion.status == RecordStatus.active.value,
        Promotion.start_date <= now,
        Promotion.end_date >= now,
    )

    if search:
        conditions = [
            Promotion.name.like(f"%{search}%"),
            Promotion.promotion_type.like(f"%{search}%"),
        ]
        try:
            value = float(search)
            conditions.append(Promotion.discount_value.between(value - 0.01, value + 0.01))
        except ValueError:
            pass
        query = query.filter(or_(*conditions))

    total = query.count()
    rows = (
        query.options(selectinload(Promotion.products), selectinload(Promotion.categories))
        .order_by(*_parse_sort(sort))
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return total, rows


def get_promotion(db: Session, promotion_id: int) -> Optional[Promotion]:
    promotion = (
        db.query(Promotion).filter(Promotion.promotion_id == promotion_id).first()
    )
    if not promotion or promotion.status != RecordStatus.active.value:
        return None
    return promotion


# ---------- UPDATE ----------

def update_promotion(
    db: Session, promotion_id: int, data: PromotionUpdate
) -> Optional[Promotion]:
    promotion = (
        db.query(Promotion).filter(Promotion.promotion_id == promotion_id).first()
    )
    if not promotion:
        return None
    if promotion.status != RecordStatus.active.value:
        raise HTTPException(status_code=400, detail="Cannot update an inactive promotion")

    for key, value in _base_fields(data).items():
        setattr(promotion, key, value)
    promotion.status = data.status.value

    # scope rows are rewritten from scratch
    promotion.products.clear()
    promotion.categories.clear()
    db.flush()
    for row in _scope_rows(promotion.promotion_id, data):
        db.add(row)

    db.commit()
    db.refresh(promotion)
    return promotion


def deactivate_promotion(db: Session, promotion_id: int) -> Optional[Promotion]:
    promotion = (
        db.query(Promotion).filter(Promotion.promotion_id == promotion_id).first()
    )
    if not promotion:
        return None
    promotion.status = RecordStatus.inactive.value
    db.commit()
    db.refresh(promotion)
    logger.info("Deactivated promotion %s", promotion_id)
    return promotion


# ---------- STOREFRONT ----------

def list_promotion_progress(
    db: Session,
    line_items: Sequence[LineItem],
    customer: CustomerContext,
    now: Optional[datetime] = None,
) -> List[PromotionProgress]:
    """Every automatic promotion running now, with the cart's progress toward it."""
    report = []
    for promotion in get_active_promotions(db, now):
        if rule_for(promotion) is None:
            continue
        progress = get_promotion_progress(promotion, line_items, customer)
        report.append(
            PromotionProgress(
                promotion_id=promotion.promotion_id,
                name=promotion.name,
                promotion_type=promotion.promotion_type,
                discount_value=float(promotion.discount_value or 0.0),
                is_applicable=progress.is_eligible,
                progress_message=progress.message,
            )
        )
    return report
