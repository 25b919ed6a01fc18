"""Date and datetime helpers with consistent UTC handling.

Timestamps (``created_at``, ``completed_at``) are always timezone-aware UTC
datetimes. Calendar values (``due_date``, ``start_date``, ``end_date``) are
plain ``date`` objects.
"""

from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Optional, Union


def now_utc() -> datetime:
    """Return current datetime in UTC timezone.

    Returns:
        Current datetime with timezone=UTC
    """
    return datetime.now(timezone.utc)


def today_utc() -> date:
    """Return the current calendar date in UTC."""
    return now_utc().date()


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt


def to_iso_string(value: Optional[Union[datetime, date]]) -> Optional[str]:
    """Convert a datetime or date to an ISO string.

    Datetimes are made timezone-aware first; dates are rendered as
    ``YYYY-MM-DD``.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return ensure_aware(value).isoformat()

    return value.isoformat()


def parse_iso_date(value: Optional[Union[str, date, datetime]]) -> Optional[date]:
    """Parse a calendar date from an ISO string, date or datetime.

    Accepts ``YYYY-MM-DD`` as well as full ISO-8601 timestamps, in which case
    only the date part is kept.

    Raises:
        ValueError: If the string is not a valid ISO date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = value.strip()
    if len(text) == 10:
        return date.fromisoformat(text)
    return datetime.fromisoformat(text.replace("Z", "+00:00")).date()


def parse_iso_datetime(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    return ensure_aware(datetime.fromisoformat(value.replace("Z", "+00:00")))


def is_last_day_of_month(day: date) -> bool:
    return day.day == monthrange(day.year, day.month)[1]


def add_months(day: date, months: int, day_of_month: Optional[int] = None) -> date:
    """Move a date forward by whole months, keeping the day of month.

    ``day_of_month`` overrides the day kept, so a series clamped into a short
    month can return to its original day. When the target month is shorter
    the day is clamped to its last day, so 2024-01-31 plus one month is
    2024-02-29.
    """
    month = day.month - 1 + months
    year = day.year + month // 12
    month = month % 12 + 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(day_of_month or day.day, last_day))
