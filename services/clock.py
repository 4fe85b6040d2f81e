"""
Clock abstraction.

Eligibility and expiry logic read time only through a Clock passed in by the
caller, so tests can pin and advance it.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol

from domain.time import require_utc_timestamp


class Clock(Protocol):
    def now(self) -> datetime:
        """Current instant as a timezone-aware UTC datetime."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """A manually driven clock (tests, replays)."""

    def __init__(self, start: datetime):
        require_utc_timestamp("start", start)
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, **delta: float) -> datetime:
        """Move forward by timedelta keyword arguments, e.g. advance(minutes=5)."""

        self._now = self._now + timedelta(**delta)
        return self._now

    def set(self, value: datetime) -> None:
        require_utc_timestamp("value", value)
        self._now = value


__all__ = ["Clock", "FixedClock", "SystemClock"]
