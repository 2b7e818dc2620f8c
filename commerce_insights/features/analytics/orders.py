"""Order aggregation: sales and order-count series, regions, statuses, deltas."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import tzinfo

from commerce_insights.core.logging import get_logger
from commerce_insights.features.analytics.bucketing import DateRange, all_bucket_keys, bucket_key
from commerce_insights.features.analytics.currency import ExchangeRateTable, normalize
from commerce_insights.features.analytics.records import OrderRecord
from commerce_insights.features.analytics.schemas import (
    OrderAnalytics,
    OrderCountPoint,
    RegionSales,
    SalesPoint,
    StatusCount,
    TimeGranularity,
)

logger = get_logger(__name__)

# Statuses never counted by the order endpoints
ORDER_EXCLUDED_STATUSES: tuple[str, ...] = ("draft",)


def percent_change(current: float, previous: float) -> float:
    """Period-over-period change in percent.

    Returns 0 when both values are 0 and 100 when only ``previous`` is 0,
    otherwise the change rounded to 2 decimal places.

    >>> percent_change(150, 100)
    50.0
    """
    if previous == 0:
        return 0.0 if current == 0 else 100.0
    return round((current - previous) / previous * 100, 2)


def rank_descending(totals: dict[str, float], limit: int | None = None) -> list[tuple[str, float]]:
    """Sort grouped totals highest first, ties kept in insertion order."""
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return ranked if limit is None else ranked[:limit]


def sum_sales(
    orders: Sequence[OrderRecord],
    reporting_currency: str,
    rate_table: ExchangeRateTable,
) -> float:
    """Total of normalized order amounts, no bucketing."""
    return sum(
        normalize(order.total, order.currency_code, reporting_currency, rate_table)
        for order in orders
    )


def aggregate_orders(
    orders: Sequence[OrderRecord],
    prev_window_orders: Sequence[OrderRecord],
    date_range: DateRange,
    granularity: TimeGranularity,
    reporting_currency: str,
    rate_table: ExchangeRateTable,
    region_limit: int | None = 5,
    tz: tzinfo | None = None,
) -> OrderAnalytics:
    """Aggregate orders of the current window against the previous window.

    Args:
        orders: Orders inside ``date_range`` (already status-filtered).
        prev_window_orders: Orders inside the previous window.
        date_range: Current window.
        granularity: Bucket size of the series.
        reporting_currency: Currency all amounts are normalized to.
        rate_table: Rates quoted against ``reporting_currency``.
        region_limit: Number of regions kept in the ranking (None keeps all).
        tz: Reference time zone for bucketing timestamps.

    Returns:
        Order analytics with dense series.

    Raises:
        InvalidDateError: If any order has a malformed ``created_at``.
    """
    keys = all_bucket_keys(granularity, date_range.start, date_range.end)

    sales_by_key: dict[str, float] = {}
    count_by_key: dict[str, int] = {}
    region_totals: dict[str, float] = {}
    status_counts: dict[str, int] = {}

    for order in orders:
        amount = normalize(order.total, order.currency_code, reporting_currency, rate_table)
        key = bucket_key(order.created_at, granularity, date_range.start, date_range.end, tz)

        sales_by_key[key] = sales_by_key.get(key, 0.0) + amount
        count_by_key[key] = count_by_key.get(key, 0) + 1

        if order.region_name:
            region_totals[order.region_name] = region_totals.get(order.region_name, 0.0) + amount
        if order.status:
            status_counts[order.status] = status_counts.get(order.status, 0) + 1

    order_sales = [SalesPoint(name=key, sales=sales_by_key.get(key, 0.0)) for key in keys]
    order_count = [OrderCountPoint(name=key, count=count_by_key.get(key, 0)) for key in keys]

    total_orders = len(orders)
    total_sales = sum(point.sales for point in order_sales)

    prev_total_orders = len(prev_window_orders)
    prev_total_sales = sum_sales(prev_window_orders, reporting_currency, rate_table)

    logger.debug(
        "analytics.orders_aggregated",
        granularity=granularity.value,
        buckets=len(keys),
        total_orders=total_orders,
        prev_total_orders=prev_total_orders,
    )

    return OrderAnalytics(
        total_orders=total_orders,
        prev_orders_percent=percent_change(total_orders, prev_total_orders),
        regions=[
            RegionSales(name=name, sales=round(sales, 2))
            for name, sales in rank_descending(region_totals, region_limit)
        ],
        total_sales=total_sales,
        prev_sales_percent=percent_change(total_sales, prev_total_sales),
        statuses=[StatusCount(name=name, count=count) for name, count in status_counts.items()],
        order_sales=order_sales,
        order_count=order_count,
        currency_code=reporting_currency,
    )
