"""Datetime helpers for timezone-aware UTC timestamps.

Some backends (SQLite in tests) hand datetimes back without tzinfo even
though everything is written in UTC; `as_utc` re-attaches it before any
Python-side comparison.
"""

from datetime import datetime, time, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(value: datetime) -> datetime:
    """Midnight (UTC) of the day containing `value`."""
    return datetime.combine(as_utc(value).date(), time.min, tzinfo=timezone.utc)
