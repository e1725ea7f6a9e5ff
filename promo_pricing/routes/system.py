import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.orm import Session

from promo_pricing.database.connection import get_db
from promo_pricing.dependencies.auth import require_admin
from promo_pricing.middleware.metrics import metrics_for
from promo_pricing.schemas.system import HealthCheckResponse, SystemMetricsResponse
from promo_pricing.services.analytics_service import (
    count_active_coupons,
    count_active_promotions,
    count_coupon_uses,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


@router.get("/health", response_model=HealthCheckResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Lightweight public health check: uptime + SELECT 1.
    """
    now = datetime.utcnow()
    start_time = getattr(request.app.state, "start_time", now)
    uptime_seconds = (now - start_time).total_seconds()

    db_ok = True
    extra = {}
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check database probe failed: %s", e)
        db_ok = False
        extra["db_error"] = str(e)

    return HealthCheckResponse(
        status="ok" if db_ok else "degraded",
        now=now,
        uptime_seconds=uptime_seconds,
        db_ok=db_ok,
        extra=extra or None,
    )


@router.get("/metrics", response_model=SystemMetricsResponse, dependencies=[Depends(require_admin)])
def system_metrics(request: Request, db: Session = Depends(get_db)):
    """
    Admin-only metrics: in-process counters from app.state.metrics plus a few
    promotion/coupon counts from the database.
    """
    now = datetime.utcnow()
    start_time = getattr(request.app.state, "start_time", now)
    uptime_seconds = (now - start_time).total_seconds()

    metrics = metrics_for(request.app)
    requests_count = int(metrics.get("requests", 0))
    total_response_ms = float(metrics.get("total_response_ms", 0.0))
    avg_response_ms = (total_response_ms / requests_count) if requests_count > 0 else None

    start_today = datetime.combine(now.date(), datetime.min.time())

    return SystemMetricsResponse(
        uptime_seconds=uptime_seconds,
        now=now,
        requests_count=requests_count,
        avg_response_ms=avg_response_ms,
        coupons_applied=int(metrics.get("coupons_applied", 0)),
        coupons_rejected=int(metrics.get("coupons_rejected", 0)),
        active_promotions=int(count_active_promotions(db, now)),
        active_coupons=int(count_active_coupons(db)),
        coupon_uses_today=int(count_coupon_uses(db, since=start_today)),
        total_coupon_uses=int(count_coupon_uses(db)),
    )
