"""Currency normalization into the reporting currency."""

from __future__ import annotations

from dataclasses import dataclass, field

from commerce_insights.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExchangeRateTable:
    """Rates quoted as units of a currency per 1 unit of ``base``.

    Attributes:
        base: Reporting currency the rates are quoted against.
        rates: Currency code -> units per 1 ``base``.
    """

    base: str
    rates: dict[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base", self.base.upper())
        object.__setattr__(
            self, "rates", {code.upper(): value for code, value in self.rates.items()}
        )

    def rate(self, currency_code: str) -> float | None:
        """Rate for a currency, 1 for the base itself, None when unknown."""
        code = currency_code.upper()
        if code == self.base.upper():
            return 1.0
        return self.rates.get(code)


def normalize(
    amount: float,
    from_currency: str,
    to_currency: str,
    rate_table: ExchangeRateTable,
) -> float:
    """Convert an amount into the reporting currency.

    Args:
        amount: Amount in ``from_currency``.
        from_currency: Currency of ``amount`` (case-insensitive).
        to_currency: Reporting currency (case-insensitive).
        rate_table: Rates quoted against the reporting currency.

    Returns:
        Amount in ``to_currency``. Identical currencies return ``amount``
        unchanged. A currency missing from the table is not converted
        (rate 1) and a ``currency.rate_missing`` warning is logged.
    """
    if from_currency.upper() == to_currency.upper():
        return amount

    rate = rate_table.rate(from_currency)
    if not rate:
        logger.warning(
            "currency.rate_missing",
            from_currency=from_currency.upper(),
            to_currency=to_currency.upper(),
            rate_base=rate_table.base,
        )
        return amount

    return amount / rate
