"""
Time rules shared by the decision engines.
All persisted timestamps are timezone-aware UTC; local time is only used for display.
"""
from datetime import datetime, timedelta
from typing import Optional
import pytz


def utcnow() -> datetime:
    return datetime.now(pytz.UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to timezone-aware UTC.

    Naive values are assumed to already be UTC (SQLite hands them back that way).
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=pytz.UTC)
    return dt.astimezone(pytz.UTC)


def minutes_between(later: datetime, earlier: datetime) -> int:
    """Whole minutes from earlier to later, floored. Negative if later is before earlier."""
    return int((ensure_utc(later) - ensure_utc(earlier)).total_seconds() // 60)


def elapsed_minutes(later: datetime, earlier: datetime) -> int:
    return max(0, minutes_between(later, earlier))


def add_minutes(dt: datetime, minutes: float) -> datetime:
    return ensure_utc(dt) + timedelta(minutes=minutes)


def utc_to_local(utc_datetime: datetime, timezone_str: str) -> datetime:
    """
    Convert UTC datetime to local timezone.

    Args:
        utc_datetime: UTC datetime (timezone-aware or naive UTC)
        timezone_str: Timezone string (e.g., "Europe/Berlin")

    Returns:
        Local datetime (timezone-aware). Falls back to UTC for unknown zones.
    """
    utc_dt = ensure_utc(utc_datetime)
    try:
        tz = pytz.timezone(timezone_str)
    except pytz.UnknownTimeZoneError:
        return utc_dt
    return utc_dt.astimezone(tz)
