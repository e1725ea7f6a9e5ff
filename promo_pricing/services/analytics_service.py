from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from promo_pricing.models.coupon import Coupon, CouponUsage
from promo_pricing.models.promotion import Promotion
from promo_pricing.schemas.coupon import CouponUsageSummary


# ---------- COUPON USAGE ----------

def get_coupon_usage_summary(db: Session, coupon_id: int) -> CouponUsageSummary:
    coupon: Optional[Coupon] = (
        db.query(Coupon).filter(Coupon.coupon_id == coupon_id).first()
    )
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found")

    total_uses, unique_users, last_applied_at = (
        db.query(
            func.count(CouponUsage.usage_id),
            func.count(func.distinct(CouponUsage.user_id)),
            func.max(CouponUsage.applied_at),
        )
        .filter(CouponUsage.coupon_id == coupon_id)
        .one()
    )

    return CouponUsageSummary(
        coupon_id=coupon.coupon_id,
        code=coupon.code,
        promotion_id=coupon.promotion_id,
        total_uses=int(total_uses or 0),
        unique_users=int(unique_users or 0),
        last_applied_at=last_applied_at,
    )


# ---------- SYSTEM COUNTERS ----------

def count_active_promotions(db: Session, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    return (
        db.query(func.count(Promotion.promotion_id))
        .filter(
            Promotion.status == "active",
            Promotion.start_date <= now,
            Promotion.end_date >= now,
        )
        .scalar()
    ) or 0


def count_active_coupons(db: Session) -> int:
    return (
        db.query(func.count(Coupon.coupon_id))
        .filter(Coupon.status == "active")
        .scalar()
    ) or 0


def count_coupon_uses(db: Session, since: Optional[datetime] = None) -> int:
    query = db.query(func.count(CouponUsage.usage_id))
    if since is not None:
        query = query.filter(CouponUsage.applied_at >= since)
    return query.scalar() or 0
