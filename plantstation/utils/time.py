"""Utility functions for time handling.

Log and status timestamps are UTC and timezone-aware. Scheduling works on
local wall-clock time: the plants are watered at a local hour of the day.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def iso_now(*, timespec: str | None = None) -> str:
    """Return current UTC time as an ISO8601 string (timezone-aware)."""
    now = utc_now()
    if timespec:
        return now.isoformat(timespec=timespec)
    return now.isoformat()


def local_now() -> datetime:
    """Current local wall-clock time (aware)."""
    return datetime.now().astimezone()


def truncate_to_hour(dt: datetime) -> datetime:
    return dt.replace(minute=0, second=0, microsecond=0)


def truncate_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def next_top_of_hour(now: datetime) -> datetime:
    """Start of the hour following ``now``."""
    return truncate_to_hour(now + timedelta(hours=1))


def next_top_of_minute(now: datetime) -> datetime:
    """Start of the minute following ``now``."""
    return truncate_to_minute(now + timedelta(minutes=1))
