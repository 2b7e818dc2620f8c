"""Core infrastructure: config, database, logging, middleware, exceptions."""

from commerce_insights.core.config import Settings, get_settings
from commerce_insights.core.database import Base, get_db
from commerce_insights.core.exceptions import (
    CommerceInsightsError,
    InvalidDateError,
    InvalidPresetError,
    MissingBoundError,
    UpstreamUnavailableError,
)
from commerce_insights.core.logging import get_logger, request_id_ctx

__all__ = [
    "Base",
    "CommerceInsightsError",
    "InvalidDateError",
    "InvalidPresetError",
    "MissingBoundError",
    "Settings",
    "UpstreamUnavailableError",
    "get_db",
    "get_logger",
    "get_settings",
    "request_id_ctx",
]
