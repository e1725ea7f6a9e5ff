import logging
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from promo_pricing.core.config import settings
from promo_pricing.core.logging import configure_logging
from promo_pricing.database.connection import Base, engine
from promo_pricing.middleware.metrics import MetricsMiddleware, new_metrics
from promo_pricing.routes import system
from promo_pricing.routes.analytics import router as analytics_router
from promo_pricing.routes.auth import router as auth_router
from promo_pricing.routes.coupons import router as coupons_router
from promo_pricing.routes.pricing import router as pricing_router
from promo_pricing.routes.promotions import router as promotions_router
import promo_pricing.models  # noqa: F401  registers every table on Base.metadata

logger = logging.getLogger(__name__)

app = FastAPI(title="Promotion & Coupon Pricing Service")

app.add_middleware(MetricsMiddleware)


app.include_router(auth_router)
app.include_router(promotions_router)
app.include_router(coupons_router)
app.include_router(pricing_router)
app.include_router(analytics_router)
app.include_router(system.router)


# ---------- ERROR ENVELOPES ----------

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "message": "Validation errors",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


@app.on_event("startup")
async def startup_event():
    configure_logging(settings.LOG_LEVEL)
    Base.metadata.create_all(bind=engine)
    app.state.start_time = datetime.utcnow()
    app.state.metrics = new_metrics()
    logger.info("Promotion pricing service started")
