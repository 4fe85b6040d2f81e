"""
Domain: a caller's spin history and the process-wide spin limits.

SpinHistory is loaded by the spin service from the history store and is
read-only to the limiter. It is partitioned into:
- session_spins: every award issued to this session (any day).
- daily_spins: awards counted toward the daily cap since the start of the
  current UTC day. By default only this session's; when identity matching
  is enabled, also awards for the same user_id or user_ip.

The cooldown is measured from the session's own spins only.

`version` is the store's optimistic-concurrency token for the session: an
append only succeeds while the version the caller loaded is still current.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple

from .award import AwardRecord


@dataclass(frozen=True, slots=True)
class SpinLimits:
    max_spins_per_session: int = 3
    max_spins_per_day: int = 10
    cooldown_ms: int = 5 * 60 * 1000

    def __post_init__(self) -> None:
        if self.max_spins_per_session < 1:
            raise ValueError("max_spins_per_session must be >= 1")
        if self.max_spins_per_day < 1:
            raise ValueError("max_spins_per_day must be >= 1")
        if self.cooldown_ms < 0:
            raise ValueError("cooldown_ms must be >= 0")


@dataclass(frozen=True, slots=True)
class SpinHistory:
    session_id: str
    session_spins: Tuple[AwardRecord, ...] = ()
    daily_spins: Tuple[AwardRecord, ...] = ()
    version: int = 0

    @staticmethod
    def empty(session_id: str) -> "SpinHistory":
        return SpinHistory(session_id=session_id)

    @property
    def last_spin_at(self) -> Optional[datetime]:
        if not self.session_spins:
            return None
        return max(award.created_at for award in self.session_spins)

    @property
    def total_spins(self) -> int:
        return len(self.session_spins)

    def with_spin(self, award: AwardRecord) -> "SpinHistory":
        """The history as it will look once `award` has been appended."""

        return replace(
            self,
            session_spins=self.session_spins + (award,),
            daily_spins=self.daily_spins + (award,),
            version=self.version + 1,
        )


__all__ = ["SpinHistory", "SpinLimits"]
