"""Analytics module for the admin dashboard.

This module provides order, product and customer analytics over date-bucketed
series, with currency normalization and CSV export.
"""

from commerce_insights.features.analytics.routes import router
from commerce_insights.features.analytics.schemas import (
    AnalyticsOptions,
    CustomerAnalytics,
    DatePreset,
    OrderAnalytics,
    ProductAnalytics,
    TimeGranularity,
)
from commerce_insights.features.analytics.service import AnalyticsService

__all__ = [
    "AnalyticsOptions",
    "AnalyticsService",
    "CustomerAnalytics",
    "DatePreset",
    "OrderAnalytics",
    "ProductAnalytics",
    "TimeGranularity",
    "router",
]
