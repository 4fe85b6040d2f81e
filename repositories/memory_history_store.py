"""
In-process HistoryStore.

Keyed table of AwardRecords with a session-id index and a discount-code
index. Serialization guarantees:
- one lock per session guards the version check and append;
- one store-wide lock guards the indexes and redemption.

Session locks are held weakly: a lock lives only while some caller is using
it, so the lock table does not grow with every session ever seen.

Suitable for single-process deployments and tests. Records live only as long
as the process.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional, Set
from uuid import UUID

from domain.award import AwardRecord
from domain.discount_code import normalize_code
from domain.spin_history import SpinHistory
from repositories.history_store import ConcurrentSpinError, DuplicateCodeError, HistoryStore

logger = logging.getLogger(__name__)


class _SessionLock:
    __slots__ = ("_lock", "__weakref__")

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def __enter__(self) -> "_SessionLock":
        self._lock.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._lock.release()


class InMemoryHistoryStore(HistoryStore):
    def __init__(self) -> None:
        self._records: Dict[UUID, AwardRecord] = {}
        self._by_session: Dict[str, List[UUID]] = defaultdict(list)
        self._by_code: Dict[str, UUID] = {}
        self._versions: Dict[str, int] = defaultdict(int)
        self._uncounted: Set[UUID] = set()

        self._index_lock = threading.Lock()
        self._session_locks: "weakref.WeakValueDictionary[str, _SessionLock]" = weakref.WeakValueDictionary()

    def _session_lock(self, session_id: str) -> _SessionLock:
        with self._index_lock:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = _SessionLock()
                self._session_locks[session_id] = lock
            return lock

    def _counts(self, award: AwardRecord) -> bool:
        return award.award_id not in self._uncounted

    def load(
        self,
        session_id: str,
        *,
        user_id: Optional[str] = None,
        user_ip: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> SpinHistory:
        with self._session_lock(session_id):
            with self._index_lock:
                session_spins = [
                    self._records[award_id]
                    for award_id in self._by_session.get(session_id, [])
                    if award_id not in self._uncounted
                ]
                daily_spins = [
                    award
                    for award in self._records.values()
                    if self._counts(award)
                    and (
                        award.session_id == session_id
                        or (user_id is not None and award.user_id == user_id)
                        or (user_ip is not None and award.user_ip == user_ip)
                    )
                    and (since is None or award.created_at >= since)
                ]
                version = self._versions[session_id]

        return SpinHistory(
            session_id=session_id,
            session_spins=tuple(sorted(session_spins, key=lambda award: award.created_at)),
            daily_spins=tuple(sorted(daily_spins, key=lambda award: award.created_at)),
            version=version,
        )

    def append(self, session_id: str, record: AwardRecord, expected_version: int) -> None:
        if record.session_id != session_id:
            raise ValueError("record.session_id does not match session_id")

        with self._session_lock(session_id):
            with self._index_lock:
                actual = self._versions[session_id]
                if actual != expected_version:
                    raise ConcurrentSpinError(session_id, expected_version, actual)

                code = record.discount_code
                if code is not None and code in self._by_code:
                    raise DuplicateCodeError(code)

                self._records[record.award_id] = record
                self._by_session[session_id].append(record.award_id)
                if code is not None:
                    self._by_code[code] = record.award_id
                self._versions[session_id] = actual + 1

        logger.debug(
            "Award appended",
            extra={"award_id": str(record.award_id), "session_id": session_id, "version": actual + 1},
        )

    def find_by_code(self, code: str) -> Optional[AwardRecord]:
        with self._index_lock:
            award_id = self._by_code.get(normalize_code(code))
            if award_id is None:
                return None
            return self._records[award_id]

    def mark_redeemed(self, code: str, redeemed_at: datetime) -> AwardRecord:
        with self._index_lock:
            award_id = self._by_code.get(normalize_code(code))
            if award_id is None:
                raise LookupError(f"No award found for code {code!r}")

            # Domain rules (no prize / already redeemed / expired) are checked
            # while holding the lock.
            redeemed = self._records[award_id].mark_as_redeemed(redeemed_at)
            self._records[award_id] = redeemed
            return redeemed

    def list_all(self) -> List[AwardRecord]:
        with self._index_lock:
            return sorted(self._records.values(), key=lambda award: award.created_at)

    def reset_session_limits(self, session_id: str) -> int:
        with self._session_lock(session_id):
            with self._index_lock:
                counted = [
                    award_id
                    for award_id in self._by_session.get(session_id, [])
                    if award_id not in self._uncounted
                ]
                self._uncounted.update(counted)
                self._versions[session_id] += 1
                return len(counted)


__all__ = ["InMemoryHistoryStore"]
