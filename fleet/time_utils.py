"""Time utility functions for timezone handling."""
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from .config import settings
from .errors import InvalidArgument

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string into a calendar date.

    Raises:
        InvalidArgument: if the string does not match the pattern or names
            a date that does not exist (e.g. 2024-13-40)
    """
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise InvalidArgument("Date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidArgument(f"Invalid calendar date: {value}")


def start_of_day(day: date, tz: Optional[ZoneInfo] = None) -> datetime:
    """
    Get midnight of the given day in the fleet timezone, converted to UTC.
    """
    tz = tz or settings.FLEET_TZ
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def day_window(day: date, tz: Optional[ZoneInfo] = None) -> tuple[datetime, datetime]:
    """
    Half-open [start, end) window covering one calendar day, in UTC.

    The end bound is the next local midnight, so days with a DST transition
    span 23 or 25 hours.
    """
    return start_of_day(day, tz), start_of_day(day + timedelta(days=1), tz)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from SQLite, convert the rest."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
