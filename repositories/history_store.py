"""
HistoryStore contract (persistence of AwardRecords).

Repositories only persist and fetch; spin eligibility rules live in the
service layer. Implementations must provide:

- Per-session serialization of "load history, then append": `append` is
  conditional on the `expected_version` the caller loaded, and raises
  ConcurrentSpinError if another spin for the session landed in between.
- Atomic redemption: `mark_redeemed` checks and marks under one lock or
  transaction, so a code is redeemed at most once.
- Unique discount codes: `append` raises DuplicateCodeError instead of
  storing a second award under a code already issued.

Transport and backend failures are raised as HistoryStoreError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from domain.award import AwardRecord
from domain.spin_history import SpinHistory


class HistoryStoreError(Exception):
    """Raised when the backing store cannot serve a request."""
    pass


class ConcurrentSpinError(HistoryStoreError):
    """Raised when a conditional append loses a race for the same session."""

    def __init__(self, session_id: str, expected_version: int, actual_version: int):
        self.session_id = session_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrent spin for session {session_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


class DuplicateCodeError(HistoryStoreError):
    """Raised when an appended award's discount code is already issued."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Discount code {code} is already issued")


class HistoryStore(ABC):
    @abstractmethod
    def load(
        self,
        session_id: str,
        *,
        user_id: Optional[str] = None,
        user_ip: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> SpinHistory:
        """
        Load a caller's spin history.

        session_spins: every award for `session_id`.
        daily_spins: awards for the session, plus those matching `user_id` or
        `user_ip` when given, created at or after `since` (all time when
        `since` is None). Callers pass no identity to keep the partition
        session-only.
        Spins excluded by `reset_session_limits` appear in neither partition.
        """

    @abstractmethod
    def append(self, session_id: str, record: AwardRecord, expected_version: int) -> None:
        """Append `record` if the session is still at `expected_version`."""

    @abstractmethod
    def find_by_code(self, code: str) -> Optional[AwardRecord]:
        """Look up an award by its discount code (normalized, upper-case)."""

    @abstractmethod
    def mark_redeemed(self, code: str, redeemed_at: datetime) -> AwardRecord:
        """
        Atomically redeem the award for `code` and return the updated record.

        Raises LookupError if no award carries the code, and
        domain.errors.RedemptionNotAllowed if it is not redeemable.
        """

    @abstractmethod
    def list_all(self) -> List[AwardRecord]:
        """Every stored award (reporting)."""

    @abstractmethod
    def reset_session_limits(self, session_id: str) -> int:
        """
        Stop counting a session's existing spins toward its limits.

        Awards stay stored (their codes remain redeemable). Returns how many
        spins were excluded.
        """


__all__ = [
    "ConcurrentSpinError",
    "DuplicateCodeError",
    "HistoryStore",
    "HistoryStoreError",
]
