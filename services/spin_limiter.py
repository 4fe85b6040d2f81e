"""
Spin eligibility (anti-abuse) rules.

Checks, in precedence order (the first failing check is reported):
1. Cooldown: the last spin was less than `cooldown_ms` ago.
2. Daily cap: spins dated today (UTC) >= `max_spins_per_day`.
3. Session cap: spins in this session >= `max_spins_per_session`.

Cooldown is reported first because it gives the caller the most actionable
wait time. Pure computation: no I/O, time is passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from domain.spin_history import SpinHistory, SpinLimits
from domain.time import next_utc_midnight, require_utc_timestamp, start_of_utc_day


class CooldownReason(str, Enum):
    COOLDOWN = "cooldown"
    DAILY_LIMIT = "daily_limit"
    SESSION_LIMIT = "session_limit"


@dataclass(frozen=True, slots=True)
class Eligibility:
    """
    Result of an eligibility check.

    next_eligible_at is None when no time-based reset exists (session cap:
    only a new session resets it).
    """

    eligible: bool
    reason: Optional[CooldownReason] = None
    cooldown_remaining_ms: Optional[int] = None
    spins_remaining_today: Optional[int] = None
    next_eligible_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class NextSpinInfo:
    can_spin_again: bool
    next_spin_allowed_at: Optional[datetime]
    spins_remaining_today: int


def count_spins_today(history: SpinHistory, now: datetime) -> int:
    """Daily-partition spins whose UTC calendar date equals today's."""

    today = start_of_utc_day(now).date()
    return sum(1 for award in history.daily_spins if award.created_at.date() == today)


def count_session_spins(history: SpinHistory) -> int:
    return len(history.session_spins)


class SpinLimiter:
    def check_eligibility(self, history: SpinHistory, limits: SpinLimits, now: datetime) -> Eligibility:
        require_utc_timestamp("now", now)

        last_spin_at = history.last_spin_at
        if last_spin_at is not None:
            elapsed_ms = int((now - last_spin_at) / timedelta(milliseconds=1))
            if elapsed_ms < limits.cooldown_ms:
                remaining_ms = limits.cooldown_ms - elapsed_ms
                return Eligibility(
                    eligible=False,
                    reason=CooldownReason.COOLDOWN,
                    cooldown_remaining_ms=remaining_ms,
                    next_eligible_at=now + timedelta(milliseconds=remaining_ms),
                )

        spins_today = count_spins_today(history, now)
        if spins_today >= limits.max_spins_per_day:
            return Eligibility(
                eligible=False,
                reason=CooldownReason.DAILY_LIMIT,
                spins_remaining_today=0,
                next_eligible_at=next_utc_midnight(now),
            )

        if count_session_spins(history) >= limits.max_spins_per_session:
            return Eligibility(
                eligible=False,
                reason=CooldownReason.SESSION_LIMIT,
                spins_remaining_today=limits.max_spins_per_day - spins_today,
            )

        return Eligibility(
            eligible=True,
            spins_remaining_today=limits.max_spins_per_day - spins_today,
        )

    def project_after_spin(self, history: SpinHistory, limits: SpinLimits, now: datetime) -> NextSpinInfo:
        """
        What the caller may do next, given a history that already includes
        the spin just granted.

        The cooldown started by that spin does not block `can_spin_again`; it
        only sets `next_spin_allowed_at`. The caps are re-checked against the
        updated counts.
        """

        require_utc_timestamp("now", now)

        spins_today = count_spins_today(history, now)
        reached_daily = spins_today >= limits.max_spins_per_day
        reached_session = count_session_spins(history) >= limits.max_spins_per_session

        next_spin_allowed_at: Optional[datetime] = None
        if not reached_daily and not reached_session:
            next_spin_allowed_at = now + timedelta(milliseconds=limits.cooldown_ms)
        elif reached_daily:
            next_spin_allowed_at = next_utc_midnight(now)

        return NextSpinInfo(
            can_spin_again=not reached_daily and not reached_session,
            next_spin_allowed_at=next_spin_allowed_at,
            spins_remaining_today=max(0, limits.max_spins_per_day - spins_today),
        )


__all__ = [
    "CooldownReason",
    "Eligibility",
    "NextSpinInfo",
    "SpinLimiter",
    "count_session_spins",
    "count_spins_today",
]
