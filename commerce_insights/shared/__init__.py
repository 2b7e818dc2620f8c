"""Pieces shared across features."""

from commerce_insights.shared.models import PlatformTimestamps

__all__ = ["PlatformTimestamps"]
