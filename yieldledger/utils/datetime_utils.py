"""
Datetime utilities.

Provides timezone-aware datetime functions.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo


Clock = Callable[[], datetime]

ONE_DAY = timedelta(days=1)


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Attach UTC to naive datetimes read back from the store.

    Some drivers (SQLite) drop tzinfo on round trip; every timestamp
    written by this package is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Number of complete 24h periods from start to end (floored)."""
    return (ensure_utc(end) - ensure_utc(start)) // ONE_DAY


def local_day_bounds(moment: datetime, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """
    Calendar day containing ``moment`` in ``tz``, returned as UTC bounds.

    Returns:
        Tuple of (start_inclusive, end_exclusive) in UTC
    """
    local = ensure_utc(moment).astimezone(tz)
    start_local = local.replace(hour=0, minute=0, second=0, microsecond=0)
    end_local = start_local + ONE_DAY
    return start_local.astimezone(UTC), end_local.astimezone(UTC)


def same_local_day(a: datetime, b: datetime, tz: ZoneInfo) -> bool:
    """True if both instants fall on the same calendar day in ``tz``."""
    return ensure_utc(a).astimezone(tz).date() == ensure_utc(b).astimezone(tz).date()
