"""
UTC Calendar Helpers

DESIGN DECISION: Every date in the system is interpreted in one fixed
calendar (UTC). Day-of-month semantics drive all scheduling, so a local
timezone leaking into a comparison shifts events by a day.

All modules go through these helpers instead of handling timezones
themselves. Internally everything is a plain `datetime.date`.
"""

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Union

DateLike = Union[date, datetime, str]

MONTH_FORMAT = "%Y-%m"


def to_utc_date(value: DateLike) -> date:
    """
    Normalise a date-ish value to a calendar date in UTC.

    - aware datetimes are converted to UTC first
    - naive datetimes are taken to already be UTC
    - strings are parsed as ISO 8601 (date or datetime)
    """
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()

    if isinstance(value, date):
        return value

    raise TypeError(f"Cannot interpret {value!r} as a date")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_start(year: int, month: int) -> date:
    return date(year, month, 1)


def month_end(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to the last valid day of the given year/month."""
    return min(day, days_in_month(year, month))


def add_months(year: int, month: int, n: int) -> tuple[int, int]:
    """Shift a (year, month) pair by n months (n may be negative)."""
    index = year * 12 + (month - 1) + n
    return index // 12, index % 12 + 1


def months_between(from_year: int, from_month: int, to_year: int, to_month: int) -> int:
    """Number of months from (from_year, from_month) to (to_year, to_month)."""
    return (to_year - from_year) * 12 + (to_month - from_month)


def shift_date_by_months(d: date, n: int) -> date:
    """Add n months to a date, clamping the day to the target month's end."""
    year, month = add_months(d.year, d.month, n)
    return date(year, month, clamp_day_to_month(year, month, d.day))


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every date from start to end inclusive."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def iter_month_days(year: int, month: int) -> Iterator[date]:
    return iter_days(month_start(year, month), month_end(year, month))


def day_of_week(d: date) -> int:
    """Day of week with Sunday=0 .. Saturday=6, the numbering stored on weekly expenses."""
    return (d.weekday() + 1) % 7


def is_same_day(first: DateLike, second: DateLike) -> bool:
    return to_utc_date(first) == to_utc_date(second)


def day_distance(first: DateLike, second: DateLike) -> int:
    """Absolute number of calendar days between two dates."""
    return abs((to_utc_date(first) - to_utc_date(second)).days)


def format_month(year: int, month: int) -> str:
    """Return 'YYYY-MM'."""
    return date(year, month, 1).strftime(MONTH_FORMAT)


def friendly_month(year: int, month: int) -> str:
    """Return e.g. 'February 2026'."""
    return date(year, month, 1).strftime("%B %Y")
