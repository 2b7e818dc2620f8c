"""Pydantic schemas for analytics endpoints.

Response shapes are consumed by the admin dashboard widgets and CSV export.
Product analytics keep the camelCase keys the dashboard reads.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from commerce_insights.core.config import Settings

# =============================================================================
# Enums
# =============================================================================


class TimeGranularity(str, Enum):
    """Bucket size of a time series.

    Chosen from the span of the requested window: up to 30 days is daily,
    up to 120 days weekly, anything longer monthly.
    """

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class DatePreset(str, Enum):
    """Named shorthand for a date range."""

    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    LAST_THREE_MONTHS = "last-3-months"
    CUSTOM = "custom"


# =============================================================================
# Options
# =============================================================================


class AnalyticsOptions(BaseModel):
    """Analytics options injected into the service at construction time.

    Attributes:
        reporting_currency: Currency every monetary aggregate is normalized to.
        low_stock_threshold: Stocked quantity at or below which a variant is low on stock.
        timezone: Reference time zone for resolving timestamps to days.
        top_regions: Number of regions kept in the sales-by-region ranking.
        top_variants: Number of variants kept in the quantity-sold ranking.
    """

    model_config = ConfigDict(frozen=True)

    reporting_currency: str = "EUR"
    low_stock_threshold: int = Field(5, ge=0)
    timezone: str = "UTC"
    top_regions: int = Field(5, ge=1)
    top_variants: int = Field(10, ge=1)

    @classmethod
    def from_settings(cls, settings: Settings) -> AnalyticsOptions:
        """Build options from application settings."""
        return cls(
            reporting_currency=settings.analytics_reporting_currency,
            low_stock_threshold=settings.analytics_low_stock_threshold,
            timezone=settings.analytics_timezone,
            top_regions=settings.analytics_top_regions,
            top_variants=settings.analytics_top_variants,
        )


# =============================================================================
# Order Analytics
# =============================================================================


class SalesPoint(BaseModel):
    """Sales accumulated in one time bucket."""

    name: str = Field(..., description="Bucket key (e.g. '2024-06-15', '1.-7.6', '2024-06').")
    sales: float = Field(..., description="Sales in the reporting currency.")


class OrderCountPoint(BaseModel):
    """Number of orders placed in one time bucket."""

    name: str = Field(..., description="Bucket key.")
    count: int = Field(..., ge=0, description="Number of orders.")


class RegionSales(BaseModel):
    """Sales total of one region."""

    name: str = Field(..., description="Region name.")
    sales: float = Field(..., description="Sales in the reporting currency, 2 decimals.")


class StatusCount(BaseModel):
    """Number of orders in one status."""

    name: str = Field(..., description="Order status.")
    count: int = Field(..., ge=0, description="Number of orders with this status.")


class OrderAnalytics(BaseModel):
    """Order analytics for the current window compared with the previous one."""

    total_orders: int = Field(..., ge=0, description="Orders in the current window.")
    prev_orders_percent: float = Field(
        ...,
        description="Change of total_orders against the previous window, in percent.",
    )
    regions: list[RegionSales] = Field(
        ..., description="Top regions by sales, highest first."
    )
    total_sales: float = Field(..., description="Sales in the current window.")
    prev_sales_percent: float = Field(
        ...,
        description="Change of total_sales against the previous window, in percent.",
    )
    statuses: list[StatusCount] = Field(
        ..., description="Order counts per status in first-seen order."
    )
    order_sales: list[SalesPoint] = Field(
        ..., description="Dense sales series over every bucket of the window."
    )
    order_count: list[OrderCountPoint] = Field(
        ..., description="Dense order-count series over every bucket of the window."
    )
    currency_code: str = Field(..., description="Reporting currency of all monetary values.")


# =============================================================================
# Product Analytics
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class VariantQuantity(_CamelModel):
    """Units sold of one product variant."""

    variant_id: str = Field(..., description="Product variant ID.")
    title: str = Field(..., description="'<product title> <variant title>'.")
    quantity: int = Field(..., ge=0, description="Units sold in the window.")


class LowStockVariant(_CamelModel):
    """A variant whose stocked quantity is at or below the threshold."""

    sku: str = Field(..., description="Variant SKU.")
    variant_name: str = Field(..., description="Variant title.")
    variant_id: str = Field(..., description="Product variant ID.")
    product_id: str = Field(..., description="Parent product ID.")
    inventory_quantity: int = Field(..., description="Stocked quantity.")


class ProductAnalytics(_CamelModel):
    """Product analytics: best sellers and low-stock variants."""

    low_stock_variants: list[LowStockVariant] = Field(
        ..., description="Every low-stock variant resolvable through its SKU."
    )
    variant_quantity_sold: list[VariantQuantity] = Field(
        ..., description="Top variants by units sold, highest first."
    )


# =============================================================================
# Customer Analytics
# =============================================================================


class CustomerCountPoint(BaseModel):
    """Distinct new and returning customers ordering in one time bucket."""

    name: str = Field(..., description="Bucket key.")
    new_customers: int = Field(..., ge=0)
    returning_customers: int = Field(..., ge=0)


class CustomerGroupTotal(BaseModel):
    """Sales total of one customer group."""

    name: str = Field(..., description="Customer group name, or 'No Group'.")
    total: float = Field(..., description="Sales in the reporting currency.")


class CustomerSales(BaseModel):
    """Sales of one customer inside the window."""

    customer_id: str
    name: str
    email: str
    groups: list[str]
    sales: float = Field(..., description="Sales in the reporting currency.")
    order_count: int = Field(..., ge=0)
    last_order: datetime


class CustomerAnalytics(BaseModel):
    """Customer analytics for a window."""

    total_customers: int = Field(..., ge=0, description="Distinct customers ordering in the window.")
    new_customers: int = Field(
        ..., ge=0, description="Customers whose every order falls inside the window."
    )
    returning_customers: int = Field(
        ..., ge=0, description="Customers with at least one order before the window."
    )
    customer_count: list[CustomerCountPoint] = Field(
        ..., description="Dense per-bucket new/returning customer series."
    )
    customer_group: list[CustomerGroupTotal] = Field(
        ..., description="Sales per customer group in first-seen order."
    )
    customer_sales: list[CustomerSales] = Field(
        ..., description="Sales per customer in first-order order."
    )
    currency_code: str = Field(..., description="Reporting currency of all monetary values.")
