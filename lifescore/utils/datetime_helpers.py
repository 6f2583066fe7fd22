"""
Standardized date/time handling

All timestamps the engine writes are timezone-aware UTC. Calendar-based
logic (streak days, recurrence instances) uses the UTC date.
"""

from datetime import date, datetime
from typing import Callable
from zoneinfo import ZoneInfo

UTC = ZoneInfo("UTC")

Clock = Callable[[], datetime]


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """Convert to UTC; naive datetimes are assumed to already be UTC"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def utc_date(dt: datetime) -> date:
    """Calendar date of a timestamp in UTC"""
    return to_utc(dt).date()


def iso_week_key(day: date) -> str:
    """ISO week label, e.g. 2026-W42"""
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"
