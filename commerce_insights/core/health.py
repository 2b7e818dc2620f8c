"""Liveness and readiness probes.

Liveness never touches the database. Readiness runs a trivial query against
the commerce database and reports how long it took, so a slow replica shows
up before dashboard requests start timing out.
"""

import time
from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from commerce_insights.core.config import Settings, get_settings
from commerce_insights.core.database import get_db
from commerce_insights.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


class AnalyticsDefaults(BaseModel):
    """Reporting settings the dashboard should label its widgets with."""

    reporting_currency: str
    timezone: str


class ProbeResponse(BaseModel):
    status: Literal["ok", "unhealthy"]
    service: str
    analytics: AnalyticsDefaults
    database: Literal["connected", "disconnected"] | None = None
    database_latency_ms: float | None = None


def _defaults(settings: Settings) -> AnalyticsDefaults:
    return AnalyticsDefaults(
        reporting_currency=settings.analytics_reporting_currency,
        timezone=settings.analytics_timezone,
    )


@router.get("/health", response_model=ProbeResponse, response_model_exclude_none=True)
async def liveness() -> ProbeResponse:
    settings = get_settings()
    return ProbeResponse(status="ok", service=settings.app_name, analytics=_defaults(settings))


@router.get("/health/ready", response_model=ProbeResponse, response_model_exclude_none=True)
async def readiness(db: AsyncSession = Depends(get_db)) -> ProbeResponse:
    """Ping the commerce database.

    A failed ping is reported in the body with status ``unhealthy``; the
    probe itself still answers 200.
    """
    settings = get_settings()
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health.database_unreachable", error_type=type(e).__name__, exc_info=True)
        return ProbeResponse(
            status="unhealthy",
            service=settings.app_name,
            analytics=_defaults(settings),
            database="disconnected",
        )

    latency_ms = round((time.perf_counter() - started) * 1000, 2)
    logger.debug("health.database_ok", latency_ms=latency_ms)
    return ProbeResponse(
        status="ok",
        service=settings.app_name,
        analytics=_defaults(settings),
        database="connected",
        database_latency_ms=latency_ms,
    )
