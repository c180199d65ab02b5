# File: utils/dt_utils.py
"""Date and time utilities for badge progress.

Pure Python date functions with no engine imports.
Uses standard library: datetime, zoneinfo, plus dateutil for calendar math.

Functions:
    - set_default_timezone / get_default_timezone: Timezone used for "today"
    - dt_today_local: Get today's date in local timezone
    - dt_now_local: Get current datetime in local timezone
    - dt_now_utc: Get current datetime in UTC
    - dt_parse_date: Parse date strings (and pass through date/datetime)
    - dt_months_between: Whole calendar months between two dates
    - dt_years_between: Fractional years between two dates (month resolution)
"""

from __future__ import annotations

from datetime import UTC, date, datetime
import logging
from zoneinfo import ZoneInfo

# Third-party date utilities
from dateutil.relativedelta import relativedelta

# Module-level logger
_LOGGER = logging.getLogger(__name__)

# Default timezone - can be overridden by caller
DEFAULT_TIME_ZONE: ZoneInfo = ZoneInfo("UTC")

MONTHS_PER_YEAR = 12


# ==============================================================================
# Timezone Configuration
# ==============================================================================


def set_default_timezone(tz: ZoneInfo) -> None:
    """Set the default timezone for all dt_utils functions.

    Call this once at startup with the group's local timezone.

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


def dt_today_local(tz: ZoneInfo | None = None) -> date:
    """Return today's date in local timezone as a `datetime.date`.

    Args:
        tz: Optional timezone override. Uses DEFAULT_TIME_ZONE if not provided.

    Example:
        datetime.date(2025, 4, 7)
    """
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info).date()


def dt_now_local(tz: ZoneInfo | None = None) -> datetime:
    """Return the current datetime in local timezone (timezone-aware)."""
    tz_info = tz or DEFAULT_TIME_ZONE
    return datetime.now(tz_info)


def dt_now_utc() -> datetime:
    """Return the current datetime in UTC (timezone-aware)."""
    return datetime.now(UTC)


# ==============================================================================
# Date Parsing
# ==============================================================================


def dt_parse_date(date_input: str | date | datetime | None) -> date | None:
    """Safely normalize a date input into a `datetime.date`.

    Accepts:
    - date / datetime objects (datetime is truncated to its date)
    - "2025-04-07" (ISO format)
    - "2025-04-07T10:00:00+00:00" (ISO datetime, date part kept)
    - "07/04/2025" (UK format, tried before US)
    - "04/07/2025" (US format)

    Args:
        date_input: Date string or object to parse, or None

    Returns:
        datetime.date or None if parsing fails.
    """
    if not date_input:
        return None

    if isinstance(date_input, datetime):
        return date_input.date()
    if isinstance(date_input, date):
        return date_input
    if not isinstance(date_input, str):
        return None

    # Try ISO format first (most common)
    try:
        return date.fromisoformat(date_input)
    except ValueError:
        pass

    try:
        return datetime.fromisoformat(date_input).date()
    except ValueError:
        pass

    for fmt in ("%d/%m/%Y", "%m/%d/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(date_input, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("Unparseable date value: %s", date_input)
    return None


# ==============================================================================
# Calendar Differences
# ==============================================================================


def dt_months_between(start: date, end: date) -> int:
    """Return whole calendar months elapsed from start to end.

    A month only counts once its day-of-month has been reached, so
    2024-01-31 → 2024-02-29 is 0 months. Negative when end precedes start.

    Examples:
        dt_months_between(date(2023, 9, 1), date(2025, 3, 1)) → 18
        dt_months_between(date(2023, 9, 15), date(2023, 10, 14)) → 0
    """
    delta = relativedelta(end, start)
    return delta.years * MONTHS_PER_YEAR + delta.months


def dt_years_between(start: date, end: date) -> float:
    """Return years elapsed from start to end at whole-month resolution.

    Examples:
        dt_years_between(date(2014, 9, 1), date(2025, 3, 1)) → 10.5
    """
    return dt_months_between(start, end) / MONTHS_PER_YEAR
