# File: utils/dt_utils.py
"""Date utilities for the recurring task engine.

Pure Python calendar helpers with no storage or manager dependencies.
Everything here operates on naive `datetime.date` values: scheduling is
whole-day only, so there is no timezone handling.

Functions:
    - dt_today: Get today's date
    - dt_today_iso: Get today's date as ISO string
    - dt_now_iso: Get current UTC datetime as ISO string
    - dt_parse_date: Parse date strings / dates / datetimes into a date
    - dt_format_date: Format a date as ISO "YYYY-MM-DD"
    - days_in_month: Number of days in a given month
    - clamp_day: Clamp a day-of-month to the month's length
    - add_months: Add months with month-end clamping
    - add_years: Add years with Feb 29 clamping
    - weekday_sunday_first: Weekday number with 0=Sunday
    - shift_to_weekday: Move forward (0-6 days) onto a weekday
"""

from __future__ import annotations

from calendar import monthrange
from datetime import UTC, date, datetime, timedelta
import logging

# Third-party date utilities
from dateutil import parser as dt_parser
from dateutil.relativedelta import relativedelta

_LOGGER = logging.getLogger(__name__)

# Days per week, used for weekday arithmetic
DAYS_PER_WEEK = 7


# ==============================================================================
# Current date helpers
# ==============================================================================


def dt_today() -> date:
    """Return today's date (local system clock)."""
    return date.today()


def dt_today_iso() -> str:
    """Return today's date as an ISO string (YYYY-MM-DD)."""
    return dt_today().isoformat()


def dt_now_iso() -> str:
    """Return current UTC time as ISO string (for created_at/updated_at)."""
    return datetime.now(UTC).isoformat()


# ==============================================================================
# Parsing / formatting
# ==============================================================================


def dt_parse_date(value: str | date | datetime | None) -> date | None:
    """Safely parse a value into a `datetime.date`.

    Accepts:
    - `datetime.date` (returned as-is)
    - `datetime.datetime` (date part)
    - "2025-04-07" (ISO format, fast path)
    - "2025-04-07T10:00:00+00:00" (ISO datetime, via dateutil isoparse)
    - "04/07/2025" (US format), "07/04/2025" (European), "2025/04/07"

    Args:
        value: Value to parse, or None

    Returns:
        datetime.date or None if parsing fails.
    """
    if value is None:
        return None

    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    try:
        return date.fromisoformat(value)
    except ValueError:
        pass

    try:
        return dt_parser.isoparse(value).date()
    except (ValueError, OverflowError):
        pass

    # Try common formats
    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y/%m/%d"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue

    _LOGGER.debug("dt_parse_date: Could not parse %r", value)
    return None


def dt_format_date(value: date | None) -> str | None:
    """Format a date as an ISO string, passing None through."""
    if value is None:
        return None
    return value.isoformat()


# ==============================================================================
# Calendar arithmetic
# ==============================================================================


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in the given month (handles leap years)."""
    return monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping `day` to the last valid day of the month.

    Examples:
        clamp_day(2025, 4, 31) -> 2025-04-30
        clamp_day(2025, 2, 29) -> 2025-02-28
        clamp_day(2024, 2, 31) -> 2024-02-29
    """
    return date(year, month, min(day, days_in_month(year, month)))


def add_months(value: date, months: int, day: int | None = None) -> date:
    """Add months to a date and land on `day` (default: the same day).

    The month is advanced with relativedelta, then the target day is clamped
    to the resulting month's length. Jan 31 + 1 month = Feb 28 (or 29).

    Args:
        value: Base date
        months: Number of months to add (may be negative)
        day: Target day-of-month (1-31); defaults to value.day

    Returns:
        The clamped date.
    """
    shifted = value + relativedelta(months=months, day=1)
    return clamp_day(shifted.year, shifted.month, value.day if day is None else day)


def add_years(
    value: date, years: int, month: int | None = None, day: int | None = None
) -> date:
    """Add years to a date, optionally moving to `month`/`day`, with clamping.

    Feb 29 + 1 year = Feb 28 on non-leap years.
    """
    shifted = value + relativedelta(years=years, day=1)
    target_month = shifted.month if month is None else month
    return clamp_day(shifted.year, target_month, value.day if day is None else day)


# ==============================================================================
# Weekdays (0=Sunday ... 6=Saturday)
# ==============================================================================


def weekday_sunday_first(value: date) -> int:
    """Return the weekday number with Sunday as 0 and Saturday as 6.

    Python's date.weekday() uses Monday=0; recurrence rules store Sunday=0.
    """
    return (value.weekday() + 1) % DAYS_PER_WEEK


def shift_to_weekday(value: date, day_of_week: int) -> date:
    """Move forward 0-6 days so the result falls on `day_of_week` (0=Sunday)."""
    offset = (day_of_week - weekday_sunday_first(value)) % DAYS_PER_WEEK
    return value + timedelta(days=offset)
