"""Date bucketing for time-series analytics.

Maps a date to the key of the time bucket it falls into and enumerates every
bucket key of a range, so that output series can be gap-filled.

Key formats:
    day:   ``2024-06-15``
    month: ``2024-06``
    week:  ``1.-7.6`` (window inside June) or ``29.4-5.5`` (April into May)

Weeks are NOT ISO weeks. They are consecutive 7-day windows anchored at the
range start, the last one truncated at the range end:

    range 2024-06-01 .. 2024-06-15
        window 0: 06-01 .. 06-07  -> "1.-7.6"
        window 1: 06-08 .. 06-14  -> "8.-14.6"
        window 2: 06-15 .. 06-15  -> "15.-15.6"
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo

from commerce_insights.core.exceptions import InvalidDateError
from commerce_insights.features.analytics.schemas import TimeGranularity

WEEK_LENGTH_DAYS = 7


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range.

    Attributes:
        start: First day of the range.
        end: Last day of the range (inclusive).
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidDateError(
                f"Range start {self.start.isoformat()} is after end {self.end.isoformat()}",
                details={"start": self.start.isoformat(), "end": self.end.isoformat()},
            )

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    @property
    def span_days(self) -> int:
        """Distance in days between start and end."""
        return (self.end - self.start).days

    def __contains__(self, value: object) -> bool:
        if not isinstance(value, date):
            return False
        if isinstance(value, datetime):
            value = value.date()
        return self.start <= value <= self.end

    def iter_days(self) -> Iterator[date]:
        """Yield every day of the range in order."""
        for offset in range(self.days):
            yield self.start + timedelta(days=offset)


def to_local_date(value: date | datetime | str, tz: tzinfo | None = None) -> date:
    """Resolve a timestamp to its calendar date in the reference time zone.

    Aware datetimes are converted to ``tz`` (UTC when omitted); naive datetimes
    are taken as already local. ISO strings are parsed first.

    Args:
        value: Date, datetime or ISO 8601 string.
        tz: Reference time zone.

    Returns:
        Calendar date.

    Raises:
        InvalidDateError: If the value is not a date or cannot be parsed.
    """
    if isinstance(value, str):
        value = parse_timestamp(value)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(tz or UTC)
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidDateError(
        f"Expected a date, got {type(value).__name__}",
        details={"value": repr(value)},
    )


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 date or datetime string.

    Raises:
        InvalidDateError: If the string is not ISO 8601.
    """
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidDateError(f"Invalid date '{value}'", details={"value": value}) from e


def format_week_label(window_start: date, window_end: date) -> str:
    """Format a week window label.

    The start carries a month only when the window crosses a month boundary.

    >>> format_week_label(date(2024, 6, 1), date(2024, 6, 7))
    '1.-7.6'
    >>> format_week_label(date(2024, 4, 29), date(2024, 5, 5))
    '29.4-5.5'
    """
    start_month = str(window_start.month) if window_start.month != window_end.month else ""
    return f"{window_start.day}.{start_month}-{window_end.day}.{window_end.month}"


def week_window(value: date, range_start: date, range_end: date) -> tuple[date, date] | None:
    """Return the 7-day window containing ``value``, or None outside the range."""
    if not range_start <= value <= range_end:
        return None
    index = (value - range_start).days // WEEK_LENGTH_DAYS
    window_start = range_start + timedelta(days=index * WEEK_LENGTH_DAYS)
    window_end = min(window_start + timedelta(days=WEEK_LENGTH_DAYS - 1), range_end)
    return window_start, window_end


def bucket_key(
    value: date | datetime | str,
    granularity: TimeGranularity,
    range_start: date | None = None,
    range_end: date | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Compute the bucket key of a date.

    Args:
        value: Date or timestamp to classify.
        granularity: Bucket size.
        range_start: First day of the requested range (week buckets only).
        range_end: Last day of the requested range (week buckets only).
        tz: Reference time zone used to resolve timestamps to days.

    Returns:
        Bucket key. For weeks, a date outside the range (or a call without
        range bounds) falls back to the ISO day string.

    Raises:
        InvalidDateError: If ``value`` cannot be interpreted as a date.
    """
    day = to_local_date(value, tz)

    if granularity == TimeGranularity.MONTH:
        return f"{day.year:04d}-{day.month:02d}"

    if granularity == TimeGranularity.WEEK and range_start is not None and range_end is not None:
        window = week_window(day, range_start, range_end)
        if window is not None:
            return format_week_label(*window)

    return day.isoformat()


def all_bucket_keys(
    granularity: TimeGranularity,
    range_start: date,
    range_end: date,
) -> list[str]:
    """Enumerate every bucket key spanning a range, in chronological order.

    Empty buckets are included; the list is the x-axis of a dense series.

    Args:
        granularity: Bucket size.
        range_start: First day of the range.
        range_end: Last day of the range (inclusive).

    Returns:
        Ordered, duplicate-free list of bucket keys.
    """
    date_range = DateRange(range_start, range_end)

    if granularity == TimeGranularity.DAY:
        return [day.isoformat() for day in date_range.iter_days()]

    if granularity == TimeGranularity.MONTH:
        keys: list[str] = []
        year, month = range_start.year, range_start.month
        while (year, month) <= (range_end.year, range_end.month):
            keys.append(f"{year:04d}-{month:02d}")
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)
        return keys

    keys = []
    window_start = range_start
    while window_start <= range_end:
        window_end = min(window_start + timedelta(days=WEEK_LENGTH_DAYS - 1), range_end)
        keys.append(format_week_label(window_start, window_end))
        window_start += timedelta(days=WEEK_LENGTH_DAYS)
    return keys
