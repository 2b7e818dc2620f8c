"""ASGI entry point for the analytics API.

Run with ``uvicorn commerce_insights.main:app``.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from commerce_insights.core.config import get_settings
from commerce_insights.core.database import dispose_engine
from commerce_insights.core.exceptions import register_exception_handlers
from commerce_insights.core.health import router as health_router
from commerce_insights.core.logging import configure_logging, get_logger
from commerce_insights.core.middleware import RequestIdMiddleware
from commerce_insights.features.analytics.routes import get_rate_cache
from commerce_insights.features.analytics.routes import router as analytics_router

logger = get_logger(__name__)

OPENAPI_TAGS = [
    {"name": "analytics", "description": "Order, product and customer dashboard data"},
    {"name": "health", "description": "Liveness and readiness probes"},
]


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging()
    logger.info(
        "app.started",
        env=settings.app_env,
        reporting_currency=settings.analytics_reporting_currency,
        timezone=settings.analytics_timezone,
        low_stock_threshold=settings.analytics_low_stock_threshold,
    )
    try:
        yield
    finally:
        get_rate_cache().clear()
        await dispose_engine()
        logger.info("app.stopped")


def create_app() -> FastAPI:
    """Build the application; interactive docs are off in production."""
    settings = get_settings()
    docs = not settings.is_production

    app = FastAPI(
        title=settings.app_name,
        summary="Admin dashboard analytics for the commerce platform",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
        docs_url="/docs" if docs else None,
        redoc_url="/redoc" if docs else None,
    )
    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(analytics_router)
    return app


app = create_app()
