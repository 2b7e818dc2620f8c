"""API routes for admin analytics endpoints.

These endpoints feed the admin dashboard widgets: order KPIs and series,
best-selling and low-stock variants, and new vs returning customers. Each
JSON endpoint has a matching download.
"""

from functools import lru_cache
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from commerce_insights.core.config import get_settings
from commerce_insights.core.database import get_db
from commerce_insights.features.analytics.export import ExportFile
from commerce_insights.features.analytics.ranges import parse_custom_range, parse_preset_query
from commerce_insights.features.analytics.rates import (
    ExchangeRateCache,
    ExchangeRateProvider,
    FrankfurterRateProvider,
)
from commerce_insights.features.analytics.repository import (
    AnalyticsDataSource,
    SqlAlchemyDataSource,
)
from commerce_insights.features.analytics.schemas import (
    AnalyticsOptions,
    CustomerAnalytics,
    OrderAnalytics,
    ProductAnalytics,
)
from commerce_insights.features.analytics.service import AnalyticsService


router = APIRouter(prefix="/admin/analytics", tags=["analytics"])


# =============================================================================
# Dependencies
# =============================================================================


@lru_cache
def get_rate_cache() -> ExchangeRateCache:
    """Process-wide exchange-rate cache."""
    settings = get_settings()
    return ExchangeRateCache(
        refresh_timezone=settings.exchange_rate_refresh_timezone,
        refresh_hour=settings.exchange_rate_refresh_hour,
    )


def get_rate_provider() -> ExchangeRateProvider:
    return FrankfurterRateProvider(cache=get_rate_cache())


def get_data_source(db: AsyncSession = Depends(get_db)) -> AnalyticsDataSource:
    return SqlAlchemyDataSource(db, tz=ZoneInfo(get_settings().analytics_timezone))


def get_analytics_service(
    data_source: AnalyticsDataSource = Depends(get_data_source),
    rate_provider: ExchangeRateProvider = Depends(get_rate_provider),
) -> AnalyticsService:
    """Build the service with options taken from settings."""
    return AnalyticsService(
        data_source=data_source,
        rate_provider=rate_provider,
        options=AnalyticsOptions.from_settings(get_settings()),
    )


def _download(export: ExportFile) -> Response:
    return Response(
        content=export.content,
        media_type=export.media_type,
        headers={"Content-Disposition": export.content_disposition},
    )


# Query parameters stay plain strings: presets and bounds are validated by the
# range parser so that every failure maps to the same problem types.
PRESET_QUERY = Query(
    None,
    description="Date preset: this-month, last-month, last-3-months or custom.",
)
DATE_FROM_QUERY = Query(
    None,
    description="Start of the window (inclusive). Format: YYYY-MM-DD.",
)
DATE_TO_QUERY = Query(
    None,
    description="End of the window (inclusive). Format: YYYY-MM-DD.",
)


# =============================================================================
# Order Endpoints
# =============================================================================


@router.get(
    "/orders",
    response_model=OrderAnalytics,
    summary="Order analytics for a preset window",
    description="""
Aggregate orders of a window and compare them with the previous window.

**Presets**:
- `this-month`: 1st of the month to today
- `last-month`: the previous calendar month
- `last-3-months`: the last three calendar months up to today
- `custom`: `date_from` to `date_to`, both required

**Granularity** of `order_sales` / `order_count` follows the window length:
up to 30 days daily, up to 120 days weekly (7-day windows from the start
date), monthly beyond. Every bucket is present, empty ones with 0.

Draft orders are excluded. Amounts are in the reporting currency.
""",
)
async def get_order_analytics(
    preset: str | None = PRESET_QUERY,
    date_from: str | None = DATE_FROM_QUERY,
    date_to: str | None = DATE_TO_QUERY,
    service: AnalyticsService = Depends(get_analytics_service),
) -> OrderAnalytics:
    """Compute order analytics.

    Args:
        preset: Preset name.
        date_from: Custom window start.
        date_to: Custom window end.
        service: Analytics service.

    Returns:
        Order analytics.
    """
    query = parse_preset_query(preset, date_from, date_to)
    return await service.order_analytics(query)


@router.get(
    "/orders/csv",
    summary="Download order analytics as a ZIP of CSVs",
    response_class=Response,
    responses={200: {"content": {"application/zip": {}}}},
)
async def download_order_analytics(
    preset: str | None = PRESET_QUERY,
    date_from: str | None = DATE_FROM_QUERY,
    date_to: str | None = DATE_TO_QUERY,
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    """Daily sales, daily order counts, sales per region and counts per status."""
    query = parse_preset_query(preset, date_from, date_to)
    return _download(await service.export_orders(query))


# =============================================================================
# Product Endpoints
# =============================================================================


@router.get(
    "/products",
    response_model=ProductAnalytics,
    response_model_by_alias=True,
    summary="Best-selling and low-stock variants",
)
async def get_product_analytics(
    date_from: str | None = DATE_FROM_QUERY,
    date_to: str | None = DATE_TO_QUERY,
    service: AnalyticsService = Depends(get_analytics_service),
) -> ProductAnalytics:
    """Top variants by units sold in the window, plus variants low on stock now."""
    return await service.product_analytics(parse_custom_range(date_from, date_to))


@router.get(
    "/products/csv",
    summary="Download units sold per variant as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}},
)
async def download_product_analytics(
    date_from: str | None = DATE_FROM_QUERY,
    date_to: str | None = DATE_TO_QUERY,
    service: AnalyticsService = Depends(get_analytics_service),
) -> Response:
    return _download(await service.export_variant_sales(parse_custom_range(date_from, date_to)))


# =============================================================================
# Customer Endpoints
# =============================================================================


@router.get(
    "/customers",
    response_model=CustomerAnalytics,
    summary="New vs returning customers and sales per customer",
    description="""
A customer is **new** when every order they ever placed falls inside the
window, and **returning** otherwise. Draft and canceled orders are excluded.
""",
)
async def get_customer_analytics(
    date_from: str | None = DATE_FROM_QUERY,
    date_to: str | None = DATE_TO_QUERY,
    service: AnalyticsService = Depends(get_analytics_service),
) -> CustomerAnalytics:
    """Compute customer analytics for a custom window."""
    return await service.customer_analytics(parse_custom_range(date_from, date_to))
