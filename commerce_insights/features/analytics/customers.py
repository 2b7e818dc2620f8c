"""Customer aggregation: new vs returning customers, sales per customer and group.

A customer is *new* when every order in their full history was placed on or
after the window start, and *returning* otherwise. The rule looks at the
whole history on purpose: a customer whose first order predates the window is
returning even if they ordered again inside it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, tzinfo

from commerce_insights.core.logging import get_logger
from commerce_insights.features.analytics.bucketing import (
    DateRange,
    all_bucket_keys,
    bucket_key,
    parse_timestamp,
)
from commerce_insights.features.analytics.currency import ExchangeRateTable, normalize
from commerce_insights.features.analytics.records import CustomerRecord, OrderRecord
from commerce_insights.features.analytics.schemas import (
    CustomerAnalytics,
    CustomerCountPoint,
    CustomerGroupTotal,
    CustomerSales,
    TimeGranularity,
)

logger = get_logger(__name__)

CUSTOMER_EXCLUDED_STATUSES: tuple[str, ...] = ("draft", "canceled")
NO_GROUP = "No Group"


@dataclass
class _CustomerTotals:
    customer: CustomerRecord
    sales: float = 0.0
    order_count: int = 0
    last_order: datetime | None = None


@dataclass
class _BucketCustomers:
    new: set[str] = field(default_factory=set)
    returning: set[str] = field(default_factory=set)


def _aware(value: datetime | str, tz: tzinfo | None) -> datetime:
    if isinstance(value, str):
        value = parse_timestamp(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz or UTC)
    return value


def window_start_instant(window_start: date | datetime, tz: tzinfo | None = None) -> datetime:
    """First instant of the window in the reference time zone."""
    if isinstance(window_start, datetime):
        return _aware(window_start, tz)
    return datetime.combine(window_start, time.min, tzinfo=tz or UTC)


def is_new_customer(
    customer: CustomerRecord,
    window_start: date | datetime,
    tz: tzinfo | None = None,
) -> bool:
    """True when the customer's whole order history starts inside the window."""
    start = window_start_instant(window_start, tz)
    return all(_aware(created_at, tz) >= start for created_at in customer.order_dates)


def aggregate_customers(
    orders: Sequence[OrderRecord],
    window_start: date | datetime,
    date_range: DateRange,
    granularity: TimeGranularity,
    reporting_currency: str,
    rate_table: ExchangeRateTable,
    tz: tzinfo | None = None,
) -> CustomerAnalytics:
    """Aggregate customer analytics for a window.

    Args:
        orders: Orders inside the window; each should carry its customer with
            the customer's full order history.
        window_start: Start of the window new customers are measured against.
        date_range: Window the series is built over.
        granularity: Bucket size of the customer-count series.
        reporting_currency: Currency all amounts are normalized to.
        rate_table: Rates quoted against ``reporting_currency``.
        tz: Reference time zone.

    Returns:
        Customer analytics. Customers appear in ``customer_sales`` in the order
        of their first order in the window; the list is not ranked.

    Raises:
        InvalidDateError: If any order has a malformed ``created_at``.
    """
    customers: dict[str, _CustomerTotals] = {}
    new_ids: set[str] = set()
    group_totals: dict[str, float] = {}
    buckets: dict[str, _BucketCustomers] = {}

    for order in orders:
        amount = normalize(order.total, order.currency_code, reporting_currency, rate_table)
        created_at = _aware(order.created_at, tz)
        key = bucket_key(created_at, granularity, date_range.start, date_range.end, tz)
        customer = order.customer

        groups = customer.groups if customer is not None else ()
        for group in groups or (NO_GROUP,):
            group_totals[group] = group_totals.get(group, 0.0) + amount

        if customer is None:
            continue

        totals = customers.get(customer.id)
        if totals is None:
            totals = customers[customer.id] = _CustomerTotals(customer=customer)
            if is_new_customer(customer, window_start, tz):
                new_ids.add(customer.id)

        totals.sales += amount
        totals.order_count += 1
        if totals.last_order is None or created_at > totals.last_order:
            totals.last_order = created_at

        bucket = buckets.setdefault(key, _BucketCustomers())
        if customer.id in new_ids:
            bucket.new.add(customer.id)
        else:
            bucket.returning.add(customer.id)

    keys = all_bucket_keys(granularity, date_range.start, date_range.end)
    customer_count = [
        CustomerCountPoint(
            name=key,
            new_customers=len(buckets[key].new) if key in buckets else 0,
            returning_customers=len(buckets[key].returning) if key in buckets else 0,
        )
        for key in keys
    ]

    customer_sales = [
        CustomerSales(
            customer_id=customer_id,
            name=totals.customer.display_name,
            email=totals.customer.email or "",
            groups=list(totals.customer.groups),
            sales=totals.sales,
            order_count=totals.order_count,
            last_order=totals.last_order,
        )
        for customer_id, totals in customers.items()
    ]

    total_customers = len(customers)
    new_customers = len(new_ids)

    logger.debug(
        "analytics.customers_aggregated",
        total_customers=total_customers,
        new_customers=new_customers,
        groups=len(group_totals),
    )

    return CustomerAnalytics(
        total_customers=total_customers,
        new_customers=new_customers,
        returning_customers=total_customers - new_customers,
        customer_count=customer_count,
        customer_group=[
            CustomerGroupTotal(name=name, total=total) for name, total in group_totals.items()
        ],
        customer_sales=customer_sales,
        currency_code=reporting_currency,
    )
