"""
Timestamp helpers for API responses.

All timestamps are stored as naive UTC (datetime.utcnow()). Responses carry
an explicit 'Z' suffix so the frontend converts them to the user's local
timezone for display.
"""

from datetime import date, datetime
from typing import Optional
import pytz

UTC = pytz.UTC


def format_datetime_for_api(dt: Optional[datetime]) -> Optional[str]:
    """
    Convert a datetime to a UTC ISO string for API responses.

    Returns format: "2026-01-06T20:43:50.245704Z", or None if dt is None.
    """
    if dt is None:
        return None

    # If already timezone-aware, convert to UTC
    if dt.tzinfo is not None:
        utc_dt = dt.astimezone(UTC)
        return utc_dt.isoformat().replace('+00:00', 'Z')

    # Naive datetimes are already UTC
    return dt.isoformat() + 'Z'


def format_date_for_api(d: Optional[date]) -> Optional[str]:
    """Calendar dates go out as YYYY-MM-DD."""
    return d.isoformat() if d else None


def now_utc() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def today_utc() -> date:
    """Current calendar date in UTC."""
    return now_utc().date()
