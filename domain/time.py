"""
Domain time utilities (pure).

Centralized timestamp validation and UTC day-boundary helpers.

The daily spin cap is evaluated against UTC calendar days; every helper
here works on timezone-aware UTC datetimes only.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def require_utc_timestamp(name: str, value: datetime) -> None:
    """
    Enforces that timestamps are UTC.

    Invariants:
    - Timestamps must be timezone-aware.
    - Timestamps must have UTC offset 0.
    """

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware (UTC)")
    if value.utcoffset() != timedelta(0):
        raise ValueError(f"{name} must be a UTC timestamp (offset 0)")


def start_of_utc_day(value: datetime) -> datetime:
    """Midnight (00:00:00 UTC) of the day containing `value`."""

    require_utc_timestamp("value", value)
    return value.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


def next_utc_midnight(value: datetime) -> datetime:
    """The first UTC midnight strictly after `value`."""

    return start_of_utc_day(value) + timedelta(days=1)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(value: datetime) -> int:
    """Whole milliseconds since the Unix epoch (exact, no float rounding)."""

    require_utc_timestamp("value", value)
    return (value - _EPOCH) // timedelta(milliseconds=1)


def parse_utc_datetime(value: object) -> datetime:
    """
    Parse a stored timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    Naive values are assumed to be UTC.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
