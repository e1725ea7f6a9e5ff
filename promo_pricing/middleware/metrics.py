# promo_pricing/middleware/metrics.py
import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)


def new_metrics() -> dict:
    return {
        "requests": 0,
        "total_response_ms": 0.0,
        "coupons_applied": 0,
        "coupons_rejected": 0,
    }


def metrics_for(app) -> dict:
    """The in-process counters dict, created on first use."""
    metrics = getattr(app.state, "metrics", None)
    if metrics is None:
        metrics = new_metrics()
        app.state.metrics = metrics
    return metrics


def incr(app, key: str, amount: int = 1) -> None:
    metrics = metrics_for(app)
    metrics[key] = metrics.get(key, 0) + amount


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Counts requests and accumulated response time on app.state.metrics.
    Route handlers add their own counters (coupon applied / rejected) via `incr`.
    NOTE: app.state is not touched in __init__; it may not exist yet while the
    middleware stack builds.
    """

    def __init__(self, app, dispatch: Callable = None):
        super().__init__(app, dispatch=dispatch)

    async def dispatch(self, request: Request, call_next):
        metrics = metrics_for(request.app)

        start = time.perf_counter()
        response: Response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000.0

        metrics["requests"] = metrics.get("requests", 0) + 1
        metrics["total_response_ms"] = metrics.get("total_response_ms", 0.0) + elapsed_ms
        logger.debug(
            "%s %s -> %s in %.2f ms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response
