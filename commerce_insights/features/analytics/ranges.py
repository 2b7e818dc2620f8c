"""Date range resolution for analytics presets.

Turns a preset (``this-month``, ``last-month``, ``last-3-months``, ``custom``)
into the current window, the previous window it is compared against, and the
bucket granularity of the current window.

The preset query is a tagged variant: one class per preset, each carrying only
the fields it needs. Shape checks happen once, in ``parse_preset_query``.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta

from commerce_insights.core.exceptions import (
    InvalidDateError,
    InvalidPresetError,
    MissingBoundError,
)
from commerce_insights.features.analytics.bucketing import DateRange
from commerce_insights.features.analytics.schemas import DatePreset, TimeGranularity

DAILY_MAX_SPAN_DAYS = 30
WEEKLY_MAX_SPAN_DAYS = 120


# =============================================================================
# Preset Query Variants
# =============================================================================


@dataclass(frozen=True)
class ThisMonth:
    preset = DatePreset.THIS_MONTH


@dataclass(frozen=True)
class LastMonth:
    preset = DatePreset.LAST_MONTH


@dataclass(frozen=True)
class LastThreeMonths:
    preset = DatePreset.LAST_THREE_MONTHS


@dataclass(frozen=True)
class Custom:
    """Explicit inclusive bounds."""

    date_from: date
    date_to: date

    preset = DatePreset.CUSTOM


PresetQuery = ThisMonth | LastMonth | LastThreeMonths | Custom


@dataclass(frozen=True)
class ResolvedRange:
    """Outcome of range resolution.

    Attributes:
        current: Window being reported on.
        previous: Window of comparable length immediately before ``current``.
        granularity: Bucket size for series over ``current``.
    """

    current: DateRange
    previous: DateRange
    granularity: TimeGranularity


# =============================================================================
# Parsing
# =============================================================================


def parse_calendar_date(value: str, field: str = "date") -> date:
    """Parse a ``yyyy-MM-dd`` string.

    Raises:
        InvalidDateError: If the value is not a calendar date.
    """
    try:
        return date.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidDateError(
            f"Invalid {field} '{value}', expected YYYY-MM-DD",
            details={"field": field, "value": value},
        ) from e


def parse_custom_range(date_from: str | None, date_to: str | None) -> Custom:
    """Build a custom query from raw bounds; both are required.

    Raises:
        MissingBoundError: If either bound is absent.
        InvalidDateError: If a bound does not parse.
    """
    if not date_from or not date_to:
        missing = [name for name, value in (("date_from", date_from), ("date_to", date_to)) if not value]
        raise MissingBoundError(
            f"Missing required parameter(s): {', '.join(missing)}",
            details={"missing": missing},
        )
    return Custom(
        date_from=parse_calendar_date(date_from, "date_from"),
        date_to=parse_calendar_date(date_to, "date_to"),
    )


def parse_preset_query(
    preset: str | None,
    date_from: str | None = None,
    date_to: str | None = None,
) -> PresetQuery:
    """Validate raw query parameters into a preset variant.

    Args:
        preset: Preset name.
        date_from: Start bound, required for ``custom``.
        date_to: End bound, required for ``custom``.

    Returns:
        The matching preset variant.

    Raises:
        InvalidPresetError: If the preset is absent or unknown.
        MissingBoundError: If ``custom`` lacks a bound.
        InvalidDateError: If a bound does not parse.
    """
    try:
        kind = DatePreset(preset)
    except ValueError as e:
        raise InvalidPresetError(
            f"Invalid preset value '{preset}'",
            details={"preset": preset, "allowed": [p.value for p in DatePreset]},
        ) from e

    if kind == DatePreset.THIS_MONTH:
        return ThisMonth()
    if kind == DatePreset.LAST_MONTH:
        return LastMonth()
    if kind == DatePreset.LAST_THREE_MONTHS:
        return LastThreeMonths()
    return parse_custom_range(date_from, date_to)


# =============================================================================
# Calendar Helpers
# =============================================================================


def shift_months(value: date, months: int) -> date:
    """Move a date by whole calendar months, clamping the day to the month end.

    >>> shift_months(date(2024, 3, 31), -1)
    datetime.date(2024, 2, 29)
    """
    month_index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def preceding_window(window: DateRange) -> DateRange:
    """Window of the same number of days ending the day before ``window``."""
    return DateRange(
        start=window.start - timedelta(days=window.days),
        end=window.start - timedelta(days=1),
    )


def select_granularity(window: DateRange) -> TimeGranularity:
    """Pick the bucket size from the distance between start and end."""
    if window.span_days <= DAILY_MAX_SPAN_DAYS:
        return TimeGranularity.DAY
    if window.span_days <= WEEKLY_MAX_SPAN_DAYS:
        return TimeGranularity.WEEK
    return TimeGranularity.MONTH


# =============================================================================
# Resolution
# =============================================================================


def resolve(query: PresetQuery, today: date | None = None) -> ResolvedRange:
    """Resolve a preset into current and previous windows.

    Args:
        query: Preset variant.
        today: Reference day (defaults to the system date).

    Returns:
        Current window, previous window and granularity.
    """
    today = today or date.today()

    match query:
        case ThisMonth():
            month_start = today.replace(day=1)
            current = DateRange(month_start, today)
            previous = DateRange(shift_months(month_start, -1), shift_months(today, -1))
        case LastMonth():
            this_month_start = today.replace(day=1)
            month_start = shift_months(this_month_start, -1)
            current = DateRange(month_start, this_month_start - timedelta(days=1))
            previous = DateRange(shift_months(month_start, -1), month_start - timedelta(days=1))
        case LastThreeMonths():
            current = DateRange(shift_months(today, -3), today)
            previous = preceding_window(current)
        case Custom(date_from=date_from, date_to=date_to):
            current = DateRange(date_from, date_to)
            previous = preceding_window(current)
        case _:
            raise InvalidPresetError(f"Unsupported preset query {query!r}")

    return ResolvedRange(current=current, previous=previous, granularity=select_granularity(current))


def resolve_preset(
    preset: str | None,
    custom_from: str | None = None,
    custom_to: str | None = None,
    today: date | None = None,
) -> ResolvedRange:
    """Parse and resolve raw preset parameters in one step."""
    return resolve(parse_preset_query(preset, custom_from, custom_to), today)
