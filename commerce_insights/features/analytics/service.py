"""Service layer for analytics operations.

Resolves the requested window, loads records and exchange rates, then hands
them to the pure aggregators. All I/O completes before aggregation starts.
"""

from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

from commerce_insights.core.logging import get_logger
from commerce_insights.features.analytics.customers import (
    CUSTOMER_EXCLUDED_STATUSES,
    aggregate_customers,
    window_start_instant,
)
from commerce_insights.features.analytics.export import (
    ExportFile,
    export_orders_zip,
    export_variant_sales_csv,
)
from commerce_insights.features.analytics.orders import ORDER_EXCLUDED_STATUSES, aggregate_orders
from commerce_insights.features.analytics.products import (
    PRODUCT_EXCLUDED_STATUSES,
    aggregate_products,
    variant_quantities,
)
from commerce_insights.features.analytics.ranges import (
    Custom,
    PresetQuery,
    resolve,
    select_granularity,
)
from commerce_insights.features.analytics.rates import ExchangeRateProvider
from commerce_insights.features.analytics.repository import AnalyticsDataSource
from commerce_insights.features.analytics.schemas import (
    AnalyticsOptions,
    CustomerAnalytics,
    OrderAnalytics,
    ProductAnalytics,
    TimeGranularity,
)

logger = get_logger(__name__)


class AnalyticsService:
    """Service computing order, product and customer analytics.

    Options are fixed at construction; nothing is read from settings per call.
    """

    def __init__(
        self,
        data_source: AnalyticsDataSource,
        rate_provider: ExchangeRateProvider,
        options: AnalyticsOptions | None = None,
    ) -> None:
        """Initialize analytics service.

        Args:
            data_source: Source of orders, customers and inventory.
            rate_provider: Source of exchange rates.
            options: Analytics options (defaults when omitted).
        """
        self.data_source = data_source
        self.rate_provider = rate_provider
        self.options = options or AnalyticsOptions()
        self.tz = ZoneInfo(self.options.timezone)

    def today(self) -> date:
        """Current day in the reference time zone."""
        return datetime.now(self.tz).date()

    async def order_analytics(self, query: PresetQuery, today: date | None = None) -> OrderAnalytics:
        """Compute order analytics for a preset, compared with the previous window.

        Args:
            query: Validated preset query.
            today: Reference day (defaults to today in the reference time zone).

        Returns:
            Order analytics in the reporting currency.

        Raises:
            InvalidDateError: If the window is inverted or a timestamp is malformed.
            UpstreamUnavailableError: If records or rates cannot be loaded.
        """
        resolved = resolve(query, today or self.today())
        currency = self.options.reporting_currency

        rate_table = await self.rate_provider.get_rates(currency)
        orders = await self.data_source.list_orders(resolved.current, ORDER_EXCLUDED_STATUSES)
        prev_orders = await self.data_source.list_orders(resolved.previous, ORDER_EXCLUDED_STATUSES)

        analytics = aggregate_orders(
            orders,
            prev_orders,
            resolved.current,
            resolved.granularity,
            currency,
            rate_table,
            region_limit=self.options.top_regions,
            tz=self.tz,
        )

        logger.info(
            "analytics.orders_computed",
            preset=query.preset.value,
            window_start=resolved.current.start.isoformat(),
            window_end=resolved.current.end.isoformat(),
            granularity=resolved.granularity.value,
            total_orders=analytics.total_orders,
        )
        return analytics

    async def product_analytics(self, query: Custom) -> ProductAnalytics:
        """Compute best-selling variants for a window and current low stock.

        Low stock reflects inventory now, independent of the window.
        """
        threshold = self.options.low_stock_threshold
        window = resolve(query).current

        orders = await self.data_source.list_orders(window, PRODUCT_EXCLUDED_STATUSES)
        levels = await self.data_source.list_inventory_levels(threshold)
        items = await self.data_source.list_inventory_items(
            list(dict.fromkeys(level.inventory_item_id for level in levels))
        )
        variants = await self.data_source.list_product_variants(
            list(dict.fromkeys(item.sku for item in items if item.sku))
        )

        analytics = aggregate_products(
            orders,
            levels,
            items,
            variants,
            threshold=threshold,
            limit=self.options.top_variants,
        )

        logger.info(
            "analytics.products_computed",
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            variants_sold=len(analytics.variant_quantity_sold),
            low_stock=len(analytics.low_stock_variants),
        )
        return analytics

    async def customer_analytics(self, query: Custom) -> CustomerAnalytics:
        """Compute new vs returning customers and sales per customer and group."""
        window = resolve(query).current
        granularity = select_granularity(window)
        currency = self.options.reporting_currency

        rate_table = await self.rate_provider.get_rates(currency)
        orders = await self.data_source.list_orders(window, CUSTOMER_EXCLUDED_STATUSES)

        analytics = aggregate_customers(
            orders,
            window_start_instant(window.start, self.tz),
            window,
            granularity,
            currency,
            rate_table,
            tz=self.tz,
        )

        logger.info(
            "analytics.customers_computed",
            window_start=window.start.isoformat(),
            window_end=window.end.isoformat(),
            total_customers=analytics.total_customers,
            new_customers=analytics.new_customers,
        )
        return analytics

    async def export_orders(self, query: PresetQuery, today: date | None = None) -> ExportFile:
        """Render order analytics as a ZIP of CSVs.

        The export is always daily and lists every region, regardless of the
        window length.
        """
        resolved = resolve(query, today or self.today())
        currency = self.options.reporting_currency

        rate_table = await self.rate_provider.get_rates(currency)
        orders = await self.data_source.list_orders(resolved.current, ORDER_EXCLUDED_STATUSES)

        analytics = aggregate_orders(
            orders,
            [],
            resolved.current,
            TimeGranularity.DAY,
            currency,
            rate_table,
            region_limit=None,
            tz=self.tz,
        )
        export = export_orders_zip(analytics, resolved.current.start, resolved.current.end)

        logger.info(
            "analytics.orders_exported",
            filename=export.filename,
            size_bytes=len(export.content),
        )
        return export

    async def export_variant_sales(self, query: Custom) -> ExportFile:
        """Render units sold per variant (every variant, highest first) as CSV."""
        window = resolve(query).current
        orders = await self.data_source.list_orders(window, PRODUCT_EXCLUDED_STATUSES)
        export = export_variant_sales_csv(
            variant_quantities(orders, limit=None), window.start, window.end
        )

        logger.info(
            "analytics.variant_sales_exported",
            filename=export.filename,
            size_bytes=len(export.content),
        )
        return export
