# File: utils/dt_utils.py
"""Date and time utilities for habitcore.

Pure Python date/time functions used by every engine. All day arithmetic is
done on calendar dates (never elapsed hours) so that a completion logged late
in the evening and one logged early the next morning are exactly one day apart
regardless of timezone offsets.

Weekday indices are Sunday-based throughout (0=Sunday..6=Saturday), matching
the stored ``days_of_week`` values. Python's own ``date.weekday()`` is
Monday-based; convert with ``dt_weekday()``.

Functions:
    - get_time_zone: Resolve an IANA name into a ZoneInfo
    - dt_today_local / dt_today_iso / dt_now_iso: "Now" in a given timezone
    - dt_parse_date: Normalize ISO date/datetime strings and objects to a date
    - dt_days_between: Whole calendar days between two dates
    - dt_weekday: Sunday-based weekday index of a date
    - dt_start_of_week / dt_end_of_week: Week boundaries for a week start day
    - dt_iter_days: Inclusive day range (ascending)
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import FR, MO, SA, SU, TH, TU, WE, relativedelta

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# Default timezone for "today" when the caller passes none
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

# dateutil weekday objects indexed by Sunday-based weekday
_RELATIVE_WEEKDAYS = (SU, MO, TU, WE, TH, FR, SA)


# ==============================================================================
# Timezone / Current Date
# ==============================================================================


def get_time_zone(name: str | None) -> ZoneInfo:
    """Resolve an IANA timezone name.

    Args:
        name: Timezone name such as "Europe/Berlin". None returns the default.

    Returns:
        ZoneInfo for the name.

    Raises:
        ZoneInfoNotFoundError: If the name is unknown.
    """
    if not name:
        return DEFAULT_TIME_ZONE
    return ZoneInfo(name)


def is_valid_time_zone(name: str) -> bool:
    """Return True if ``name`` resolves to a known timezone."""
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in the given timezone.

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Example:
        datetime.date(2024, 1, 5)
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info).date()


def dt_today_iso(tz: ZoneInfo | None = None) -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return dt_today_local(tz).isoformat()


def dt_now_iso(tz: ZoneInfo | None = None) -> str:
    """Return the current datetime as an ISO 8601 string.

    Example:
        "2024-01-05T14:30:00+00:00"
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info).isoformat()


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Parsing
# ==============================================================================


def dt_parse_date(value: str | date | datetime | None) -> date | None:
    """Safely normalize a date-like value into a `datetime.date`.

    Accepts:
    - "2024-01-05" (ISO date)
    - "2024-01-05T08:30:00+00:00" (ISO datetime; the calendar date as written
      is kept, no timezone conversion)
    - date / datetime objects

    Args:
        value: Value to parse, or None

    Returns:
        datetime.date or None if the value is empty or unparseable.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(value).date()
    except ValueError:
        _LOGGER.debug("Unparseable date value: %s", value)
        return None


# ==============================================================================
# Day Arithmetic
# ==============================================================================


def dt_days_between(later: date, earlier: date) -> int:
    """Return whole calendar days from ``earlier`` to ``later``.

    Negative when ``later`` is actually before ``earlier``.

    Examples:
        dt_days_between(date(2024, 1, 4), date(2024, 1, 1)) → 3
        dt_days_between(date(2024, 1, 1), date(2024, 1, 1)) → 0
    """
    return (later - earlier).days


def dt_weekday(day: date) -> int:
    """Return the Sunday-based weekday index (0=Sunday..6=Saturday)."""
    return (day.weekday() + 1) % 7


def dt_start_of_week(day: date, week_start: int) -> date:
    """Return the first day of the week containing ``day``.

    Args:
        day: Any date inside the week.
        week_start: Sunday-based weekday the week starts on (1 = Monday).

    Example:
        dt_start_of_week(date(2024, 1, 10), 1) → date(2024, 1, 8)  # Wed → Mon
    """
    return day + relativedelta(weekday=_RELATIVE_WEEKDAYS[week_start % 7](-1))


def dt_end_of_week(day: date, week_start: int) -> date:
    """Return the last day (inclusive) of the week containing ``day``."""
    return dt_start_of_week(day, week_start) + timedelta(days=6)


def dt_iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive, ascending."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
