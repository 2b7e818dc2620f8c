"""Exchange-rate providers.

Provides the rate table used for currency normalization:
- FrankfurterRateProvider (default): ECB reference rates over HTTP, cached
  in-process until the next daily publication.
- StaticRateProvider: fixed rates, for tests and single-currency stores.

CRITICAL: Rates are fetched before aggregation starts. A failed fetch fails
the request; nothing is retried.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import httpx

from commerce_insights.core.config import get_settings
from commerce_insights.core.exceptions import UpstreamUnavailableError
from commerce_insights.core.logging import get_logger
from commerce_insights.features.analytics.currency import ExchangeRateTable

logger = get_logger(__name__)


class ExchangeRateProvider(ABC):
    """Source of exchange-rate tables."""

    @abstractmethod
    async def get_rates(self, base: str) -> ExchangeRateTable:
        """Return rates quoted against ``base``.

        Args:
            base: Reporting currency code.

        Returns:
            Rate table for ``base``.

        Raises:
            UpstreamUnavailableError: If the rates cannot be obtained.
        """
        ...


class StaticRateProvider(ExchangeRateProvider):
    """Provider returning a fixed rate table."""

    def __init__(self, rates: dict[str, float] | None = None) -> None:
        self._rates = {code.upper(): value for code, value in (rates or {}).items()}

    async def get_rates(self, base: str) -> ExchangeRateTable:
        return ExchangeRateTable(base=base.upper(), rates=dict(self._rates))


@dataclass
class _CacheEntry:
    table: ExchangeRateTable
    expires_at: datetime


class ExchangeRateCache:
    """In-process cache of rate tables keyed by base currency.

    Entries expire at the next refresh hour in the refresh time zone, which is
    when the reference rates are republished.
    """

    def __init__(self, refresh_timezone: str = "Europe/Berlin", refresh_hour: int = 16) -> None:
        self._zone = ZoneInfo(refresh_timezone)
        self._refresh_hour = refresh_hour
        self._entries: dict[str, _CacheEntry] = {}

    def next_expiry(self, now: datetime | None = None) -> datetime:
        """Next refresh instant strictly after ``now``."""
        now = (now or datetime.now(self._zone)).astimezone(self._zone)
        expiry = now.replace(hour=self._refresh_hour, minute=0, second=0, microsecond=0)
        if now >= expiry:
            expiry += timedelta(days=1)
        return expiry

    def get(self, base: str, now: datetime | None = None) -> ExchangeRateTable | None:
        entry = self._entries.get(base.upper())
        if entry is None:
            return None
        now = now or datetime.now(self._zone)
        if now >= entry.expires_at:
            del self._entries[base.upper()]
            return None
        return entry.table

    def set(self, table: ExchangeRateTable, now: datetime | None = None) -> datetime:
        expires_at = self.next_expiry(now)
        self._entries[table.base.upper()] = _CacheEntry(table=table, expires_at=expires_at)
        return expires_at

    def clear(self) -> None:
        self._entries.clear()


class FrankfurterRateProvider(ExchangeRateProvider):
    """Rates from the Frankfurter API (``GET /latest?base=EUR``).

    The response body looks like::

        {"amount": 1.0, "base": "EUR", "date": "2024-06-14",
         "rates": {"DKK": 7.46, "USD": 1.07, ...}}
    """

    def __init__(
        self,
        cache: ExchangeRateCache,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            cache: Shared rate cache.
            client: HTTP client to use; a short-lived client is created per
                fetch when omitted.
        """
        self.settings = get_settings()
        self._cache = cache
        self._client = client

    async def get_rates(self, base: str) -> ExchangeRateTable:
        base = base.upper()
        cached = self._cache.get(base)
        if cached is not None:
            logger.debug("rates.cache_hit", base=base)
            return cached

        table = await self._fetch(base)
        expires_at = self._cache.set(table)
        logger.info(
            "rates.fetched",
            base=base,
            currencies=len(table.rates),
            expires_at=expires_at.isoformat(),
        )
        return table

    async def _fetch(self, base: str) -> ExchangeRateTable:
        url = f"{self.settings.exchange_rate_api_url.rstrip('/')}/latest"
        try:
            if self._client is not None:
                response = await self._client.get(url, params={"base": base})
            else:
                async with httpx.AsyncClient(
                    timeout=self.settings.exchange_rate_timeout_seconds
                ) as client:
                    response = await client.get(url, params={"base": base})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "rates.fetch_failed",
                base=base,
                status_code=e.response.status_code,
            )
            raise UpstreamUnavailableError(
                f"Exchange-rate provider returned HTTP {e.response.status_code}",
                details={"base": base},
            ) from e
        except (httpx.RequestError, ValueError) as e:
            logger.error("rates.fetch_failed", base=base, error=str(e), error_type=type(e).__name__)
            raise UpstreamUnavailableError(
                "Exchange-rate provider unreachable",
                details={"base": base},
            ) from e

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict):
            raise UpstreamUnavailableError(
                "Exchange-rate provider returned no rates",
                details={"base": base},
            )
        return ExchangeRateTable(
            base=base,
            rates={str(code).upper(): float(value) for code, value in rates.items()},
        )
