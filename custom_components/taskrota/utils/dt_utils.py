# File: utils/dt_utils.py
"""Date and time utilities for TaskRota.

Pure Python date/time functions used by every engine. Calendar dates travel
as `YYYY-MM-DD` strings interpreted in the caller's local timezone; this
module turns them into `datetime.date` objects, does the calendar arithmetic
and builds timezone-aware datetimes for due times.

Uses standard library: datetime, zoneinfo, plus dateutil for month arithmetic.

Functions:
    - set_default_timezone / get_default_timezone: Local timezone configuration
    - dt_now_local / dt_now_iso: Current datetime in local timezone
    - dt_parse_date: Parse date strings (date part of datetimes accepted)
    - dt_date_part: Truncate an ISO date/datetime string to its date part
    - dt_days_between / dt_months_between: Whole calendar units between dates
    - dt_iter_days: Iterate calendar days in an inclusive range
    - dt_weekday: Weekday number with 0 = Sunday
    - dt_nth_weekday_of_month: Set-position helper
    - parse_time_of_day: Parse "HH:MM[:SS]" strings
    - dt_combine_local: Combine a date and time of day in local timezone
    - dt_format_time_label: "5:00 PM" style labels
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, time, timedelta
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities
from dateutil.relativedelta import relativedelta
from dateutil.rrule import weekdays as RRULE_WEEKDAYS

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# ==============================================================================
# Constants (local copies to avoid circular imports)
# ==============================================================================

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

DAYS_PER_WEEK = 7
MONTHS_PER_YEAR = 12


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this once when the application starts to configure the household's
    local timezone. Date strings passed to the engines are interpreted in it.

    Args:
        tz: ZoneInfo object representing the default timezone
    """
    global DEFAULT_TIME_ZONE  # noqa: PLW0603
    DEFAULT_TIME_ZONE = tz


def get_default_timezone() -> ZoneInfo:
    """Get the current default timezone."""
    return DEFAULT_TIME_ZONE


# ==============================================================================
# Current Date/Time Functions
# ==============================================================================


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware)."""
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info)


def dt_now_iso(tz: ZoneInfo | None = None) -> str:
    """Return the current local datetime as an ISO 8601 string.

    Example:
        "2025-04-07T14:30:00-05:00"
    """
    return dt_now_local(tz).isoformat()


# ==============================================================================
# Date Parsing
# ==============================================================================


def dt_date_part(value: str | None) -> str | None:
    """Truncate an ISO date or datetime string to its `YYYY-MM-DD` part.

    Example:
        "2024-03-10T09:00:00" → "2024-03-10"
    """
    if not value or not isinstance(value, str):
        return None
    return value.split("T", 1)[0][:10]


def dt_parse_date(value: str | date | datetime | None) -> date | None:
    """Safely parse a date value into a `datetime.date`.

    Accepts:
    - date / datetime objects (datetimes are truncated, no tz conversion)
    - "2025-04-07" (ISO format)
    - "2025-04-07T09:00:00" (date part of an ISO datetime)
    - "04/07/2025" (US format)
    - "07/04/2025" (European format - attempted if US fails)

    Returns:
        datetime.date or None if parsing fails.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None

    date_str = value.strip()

    # Try ISO format first (most common)
    try:
        return date.fromisoformat(dt_date_part(date_str) or date_str)
    except ValueError:
        pass

    # Try common formats
    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("Unparsable date value: %s", value)
    return None


def dt_has_time_component(value: str | None) -> bool:
    """Return True when an ISO string carries a time (e.g. "2024-03-10T09:00")."""
    return bool(value) and isinstance(value, str) and "T" in value


# ==============================================================================
# Calendar Arithmetic
# ==============================================================================


def dt_days_between(start: date, end: date) -> int:
    """Return the signed number of whole days from `start` to `end`."""
    return (end - start).days


def dt_weeks_between(start: date, end: date) -> int:
    """Return whole weeks from `start` to `end` (floor division of days)."""
    return dt_days_between(start, end) // DAYS_PER_WEEK


def dt_months_between(start: date, end: date) -> int:
    """Return calendar months from `start` to `end`, ignoring the day.

    Example:
        2024-01-31 → 2024-02-01 = 1
    """
    return (end.year - start.year) * MONTHS_PER_YEAR + (end.month - start.month)


def dt_iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from `start` to `end` inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def dt_weekday(value: date) -> int:
    """Return the weekday number with 0 = Sunday .. 6 = Saturday."""
    return value.isoweekday() % DAYS_PER_WEEK


def _rrule_weekday(weekday: int):
    """Map a Sunday-based weekday number to a dateutil weekday instance."""
    # dateutil weekdays are Monday-based: MO=0 .. SU=6
    return RRULE_WEEKDAYS[(weekday - 1) % DAYS_PER_WEEK]


def dt_nth_weekday_of_month(year: int, month: int, weekday: int, nth: int) -> date | None:
    """Return the `nth` occurrence of a weekday in a month.

    Args:
        year: Calendar year
        month: Calendar month (1-12)
        weekday: Weekday number (0 = Sunday)
        nth: 1-based position, or negative to count from the end (-1 = last)

    Returns:
        The matching date, or None when the month has no such occurrence
        (e.g. a 5th Monday in a month with four).
    """
    if nth == 0:
        return None
    rd_weekday = _rrule_weekday(weekday)
    if nth > 0:
        result = date(year, month, 1) + relativedelta(weekday=rd_weekday(+nth))
    else:
        result = date(year, month, 1) + relativedelta(day=31, weekday=rd_weekday(nth))
    if result.month != month or result.year != year:
        return None
    return result


# ==============================================================================
# Time of Day
# ==============================================================================


def parse_time_of_day(value: str | None) -> time | None:
    """Parse an "HH:MM" or "HH:MM:SS" string into a `datetime.time`.

    Returns:
        time object, or None for empty / malformed / out-of-range input.
    """
    if not value or not isinstance(value, str):
        return None

    parts = value.strip().split(":")
    try:
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
        second = int(parts[2]) if len(parts) > 2 else 0
        return time(hour, minute, second)
    except ValueError as exc:
        _LOGGER.debug("Invalid time of day %s: %s", value, exc)
        return None


def dt_combine_local(
    value: date,
    time_of_day: time | None = None,
    tz: ZoneInfo | None = None,
) -> datetime:
    """Combine a date and a time of day into a timezone-aware local datetime.

    Midnight is used when no time is given.
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.combine(value, time_of_day or time.min).replace(tzinfo=tz_info)


def dt_format_time_label(time_of_day: time) -> str:
    """Format a time as a 12-hour label.

    Example:
        time(17, 0) → "5:00 PM"
    """
    hour = time_of_day.hour % 12 or 12
    suffix = "AM" if time_of_day.hour < 12 else "PM"
    return f"{hour}:{time_of_day.minute:02d} {suffix}"
