"""
Pytest configuration and shared fixtures.

This file adds the parent directory to the Python path so that tests
can import from the domain, services, repositories and api modules.
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Mapping, Optional
from uuid import UUID, uuid4

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.award import AwardRecord  # noqa: E402
from domain.spin_history import SpinLimits  # noqa: E402
from domain.wheel_section import WheelSection, get_outcome  # noqa: E402
from repositories.memory_history_store import InMemoryHistoryStore  # noqa: E402
from services.clock import FixedClock  # noqa: E402
from services.outcome_selector import WeightedOutcomeSelector  # noqa: E402
from services.random_source import SeededRandomSource  # noqa: E402
from services.redemption_service import RedemptionService  # noqa: E402
from services.spin_service import SpinService  # noqa: E402

# Monday noon, UTC.
NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)

ADMIN_KEY = "admin-secret"


class FixedRandomSource:
    """
    RandomSource that always returns the same float and the low end of every
    integer range.

    With the default 0.1 the draw lands on the first row (DISCOUNT_5).
    """

    def __init__(self, value: float = 0.1):
        self.value = value

    def next_float(self) -> float:
        return self.value

    def next_int(self, low: int, high: int) -> int:
        return low


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def limits() -> SpinLimits:
    return SpinLimits()


@pytest.fixture
def selector() -> WeightedOutcomeSelector:
    return WeightedOutcomeSelector(SeededRandomSource(1234))


@pytest.fixture
def winning_selector() -> WeightedOutcomeSelector:
    return WeightedOutcomeSelector(FixedRandomSource(0.1))


@pytest.fixture
def spin_service(store, winning_selector, clock, limits) -> SpinService:
    return SpinService(store, winning_selector, clock, limits=limits, admin_reset_key=ADMIN_KEY)


@pytest.fixture
def redemption_service(store, clock) -> RedemptionService:
    return RedemptionService(store, clock)


@pytest.fixture
def make_award():
    """Factory for AwardRecords with sensible defaults."""

    def _make(
        session_id: str = "s1",
        created_at: datetime = NOW,
        section: WheelSection = WheelSection.DISCOUNT_15,
        *,
        award_id: Optional[UUID] = None,
        user_id: Optional[str] = None,
        user_ip: Optional[str] = None,
        ttl: timedelta = timedelta(hours=24),
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> AwardRecord:
        outcome = get_outcome(section)
        assert outcome is not None
        return AwardRecord.create(
            award_id=award_id or uuid4(),
            session_id=session_id,
            outcome=outcome,
            spin_angle=1500.0,
            spin_duration_ms=4000,
            created_at=created_at,
            ttl=ttl,
            user_ip=user_ip,
            user_id=user_id,
            metadata=metadata,
        )

    return _make
