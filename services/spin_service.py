"""
Spin service (the wheel's use case).

Handles:
- Request validation (session id, IPv4 format)
- Eligibility against cooldown, daily and session caps
- Weighted draw, award creation and conditional append
- Next-spin projection returned with every award
- History, config, stats and admin limit reset views

A spin is validate-then-act: nothing is appended unless every check passed,
and the append is conditional on the history version the checks ran against.
"""

from __future__ import annotations

import hmac
import logging
import math
import re
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
from uuid import UUID, uuid4

from domain.award import DEFAULT_AWARD_TTL, AwardRecord
from domain.spin_history import SpinHistory, SpinLimits
from domain.time import start_of_utc_day
from domain.wheel_section import Outcome, WheelSection, discount_outcomes
from repositories.history_store import ConcurrentSpinError, DuplicateCodeError, HistoryStore, HistoryStoreError
from services.clock import Clock
from services.errors import (
    AuthorizationError,
    RateLimitError,
    SpinValidationError,
    StorageError,
    WheelDisabledError,
)
from services.outcome_selector import WeightedOutcomeSelector
from services.spin_limiter import CooldownReason, Eligibility, SpinLimiter, count_spins_today

logger = logging.getLogger(__name__)

MAX_SESSION_ID_LENGTH = 100

# Conditional appends retried on a version conflict or code collision before giving up.
MAX_APPEND_ATTEMPTS = 3

_IPV4_PATTERN = re.compile(
    r"^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}"
    r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$"
)


@dataclass(frozen=True, slots=True)
class SpinRequest:
    """
    Request to spin the wheel.

    session_id is required; the other fields are optional caller context.
    """
    session_id: str
    user_id: Optional[str] = None
    user_ip: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SpinResult:
    """
    Result of a granted spin.

    award: the persisted AwardRecord
    can_spin_again: whether the caps still allow another spin (the cooldown
        that just started does not count against this)
    next_spin_allowed_at: end of that cooldown, next UTC midnight when the
        daily cap was reached, or None when the session cap was reached
    spins_remaining_today: daily allowance left after this spin
    """
    award: AwardRecord
    can_spin_again: bool
    next_spin_allowed_at: Optional[datetime]
    spins_remaining_today: int


@dataclass(frozen=True, slots=True)
class HistoryView:
    session_id: str
    spins: Tuple[AwardRecord, ...]
    total_spins: int
    total_wins: int
    total_discount_earned: float
    can_spin: bool
    next_spin_allowed_at: Optional[datetime]
    spins_remaining_today: int


@dataclass(frozen=True, slots=True)
class WheelConfig:
    enabled: bool
    limits: SpinLimits
    outcomes: Tuple[Outcome, ...]
    min_discount: int
    max_discount: int
    award_ttl_hours: float


@dataclass(frozen=True, slots=True)
class WheelStats:
    total_spins: int
    total_wins: int
    win_rate: float  # percent of spins that won a discount
    average_discount: float  # mean percentage over winning spins
    section_counts: Dict[WheelSection, int]
    unique_sessions: int
    redeemed_count: int


def is_ipv4(value: str) -> bool:
    return _IPV4_PATTERN.match(value) is not None


def _format_wait(remaining_ms: int) -> str:
    minutes = math.ceil(remaining_ms / 60000)
    if minutes <= 1:
        return "1 minute"
    return f"{minutes} minutes"


def _validate_session_id(session_id: Optional[str]) -> List[Dict[str, str]]:
    if session_id is None or not session_id.strip():
        return [{"field": "sessionId", "message": "Session ID is required", "code": "REQUIRED"}]
    if len(session_id.strip()) > MAX_SESSION_ID_LENGTH:
        return [{
            "field": "sessionId",
            "message": f"Session ID must be at most {MAX_SESSION_ID_LENGTH} characters",
            "code": "TOO_LONG",
        }]
    return []


class SpinService:
    def __init__(
        self,
        store: HistoryStore,
        selector: WeightedOutcomeSelector,
        clock: Clock,
        *,
        limits: SpinLimits = SpinLimits(),
        limiter: Optional[SpinLimiter] = None,
        award_ttl: timedelta = DEFAULT_AWARD_TTL,
        wheel_enabled: bool = True,
        admin_reset_key: Optional[str] = None,
        daily_limit_by_identity: bool = False,
        id_factory: Callable[[], UUID] = uuid4,
    ):
        self._store = store
        self._selector = selector
        self._clock = clock
        self._limits = limits
        self._limiter = limiter or SpinLimiter()
        self._award_ttl = award_ttl
        self._wheel_enabled = wheel_enabled
        self._admin_reset_key = admin_reset_key
        self._daily_limit_by_identity = daily_limit_by_identity
        self._id_factory = id_factory

    @property
    def limits(self) -> SpinLimits:
        return self._limits

    def validate_request(self, request: SpinRequest) -> SpinRequest:
        """
        Check request shape and return it normalized.

        Raises SpinValidationError with one entry per invalid field.
        """

        errors = _validate_session_id(request.session_id)

        user_ip = (request.user_ip or "").strip() or None
        if user_ip is not None and not is_ipv4(user_ip):
            errors.append({"field": "userIp", "message": "User IP must be a valid IPv4 address", "code": "INVALID_IP"})

        if errors:
            raise SpinValidationError(errors)

        return replace(
            request,
            session_id=request.session_id.strip(),
            user_id=(request.user_id or "").strip() or None,
            user_ip=user_ip,
            user_agent=(request.user_agent or "").strip() or None,
        )

    def spin(self, request: SpinRequest) -> SpinResult:
        """
        Spin the wheel for one caller.

        **Process:**
        1. Validate the request
        2. Refuse if the wheel is disabled
        3. Load the caller's history and check eligibility
        4. Draw an outcome, derive angle and duration
        5. Build the AwardRecord and append it conditionally
        6. Project next-spin info as if the new spin were already stored

        A version conflict means another spin for the session landed between
        load and append; the whole check runs again against fresh history.
        A code collision with an earlier award is retried with a new award id.
        """

        request = self.validate_request(request)

        if not self._wheel_enabled:
            raise WheelDisabledError("The discount wheel is currently disabled")

        for attempt in range(1, MAX_APPEND_ATTEMPTS + 1):
            now = self._clock.now()
            history = self._load_history(request.session_id, request.user_id, request.user_ip, now)

            eligibility = self._limiter.check_eligibility(history, self._limits, now)
            if not eligibility.eligible:
                # Expected steady-state behavior, not a system error.
                logger.info(
                    "Spin denied",
                    extra={
                        "session_id": request.session_id,
                        "reason": eligibility.reason.value if eligibility.reason else None,
                        "cooldown_remaining_ms": eligibility.cooldown_remaining_ms,
                    },
                )
                raise self._rate_limit_error(eligibility, now)

            award = self._build_award(request, now)

            try:
                self._store.append(request.session_id, award, history.version)
            except ConcurrentSpinError as e:
                logger.warning(
                    "Concurrent spin detected; re-checking eligibility",
                    extra={"session_id": request.session_id, "attempt": attempt, "actual_version": e.actual_version},
                )
                continue
            except DuplicateCodeError as e:
                logger.warning(
                    "Discount code collision; retrying with a new award id",
                    extra={"session_id": request.session_id, "attempt": attempt, "discount_code": e.code},
                )
                continue
            except HistoryStoreError as e:
                logger.exception("Failed to store spin", extra={"session_id": request.session_id})
                raise StorageError("Could not record the spin. Please try again.") from e

            next_spin = self._limiter.project_after_spin(history.with_spin(award), self._limits, now)

            logger.info(
                "Spin completed",
                extra={
                    "award_id": str(award.award_id),
                    "session_id": award.session_id,
                    "section": award.section.value,
                    "discount_percentage": award.discount_percentage.value,
                    "can_spin_again": next_spin.can_spin_again,
                    "spins_remaining_today": next_spin.spins_remaining_today,
                },
            )

            return SpinResult(
                award=award,
                can_spin_again=next_spin.can_spin_again,
                next_spin_allowed_at=next_spin.next_spin_allowed_at,
                spins_remaining_today=next_spin.spins_remaining_today,
            )

        logger.error(
            "Spin abandoned after repeated append conflicts",
            extra={"session_id": request.session_id, "attempts": MAX_APPEND_ATTEMPTS},
        )
        raise StorageError("The spin could not be recorded due to concurrent requests. Please try again.")

    def get_history(
        self,
        session_id: str,
        user_id: Optional[str] = None,
        user_ip: Optional[str] = None,
    ) -> HistoryView:
        errors = _validate_session_id(session_id)
        if errors:
            raise SpinValidationError(errors)
        session_id = session_id.strip()

        now = self._clock.now()
        history = self._load_history(session_id, user_id, user_ip, now)
        eligibility = self._limiter.check_eligibility(history, self._limits, now)

        merged: Dict[UUID, AwardRecord] = {}
        for award in history.session_spins + history.daily_spins:
            merged[award.award_id] = award
        spins = tuple(sorted(merged.values(), key=lambda award: award.created_at))

        winning = [award for award in spins if award.is_winning()]
        remaining_today = max(0, self._limits.max_spins_per_day - count_spins_today(history, now))

        return HistoryView(
            session_id=session_id,
            spins=spins,
            total_spins=len(spins),
            total_wins=len(winning),
            total_discount_earned=sum(award.discount_percentage.value for award in winning),
            can_spin=eligibility.eligible,
            next_spin_allowed_at=eligibility.next_eligible_at,
            spins_remaining_today=remaining_today,
        )

    def get_wheel_config(self) -> WheelConfig:
        prizes = [outcome.discount_percentage for outcome in discount_outcomes(self._selector.table)]
        return WheelConfig(
            enabled=self._wheel_enabled,
            limits=self._limits,
            outcomes=self._selector.table,
            min_discount=min(prizes),
            max_discount=max(prizes),
            award_ttl_hours=self._award_ttl / timedelta(hours=1),
        )

    def get_stats(self, since: Optional[datetime] = None, until: Optional[datetime] = None) -> WheelStats:
        """
        Aggregate statistics over stored awards.

        `since` and `until` bound the award creation time (both inclusive);
        either may be omitted.
        """

        if since is not None and until is not None and since > until:
            raise SpinValidationError(
                [{"field": "from", "message": "The start of the range must not be after its end", "code": "INVALID_RANGE"}]
            )

        try:
            awards = self._store.list_all()
        except HistoryStoreError as e:
            logger.exception("Failed to load awards for stats")
            raise StorageError("Could not load wheel statistics. Please try again.") from e

        awards = [
            award
            for award in awards
            if (since is None or award.created_at >= since) and (until is None or award.created_at <= until)
        ]

        winning = [award for award in awards if award.is_winning()]
        counts = Counter(award.section for award in awards)

        total = len(awards)
        win_rate = round(len(winning) / total * 100, 2) if total else 0.0
        average = (
            round(sum(award.discount_percentage.value for award in winning) / len(winning), 2)
            if winning
            else 0.0
        )

        return WheelStats(
            total_spins=total,
            total_wins=len(winning),
            win_rate=win_rate,
            average_discount=average,
            section_counts={outcome.section: counts.get(outcome.section, 0) for outcome in self._selector.table},
            unique_sessions=len({award.session_id for award in awards}),
            redeemed_count=sum(1 for award in awards if award.is_redeemed),
        )

    def reset_limits(self, session_id: str, admin_key: Optional[str]) -> int:
        """
        Stop counting a session's spins toward its limits (admin/testing).

        Issued awards are kept. Returns how many spins were excluded.
        """

        if not self._admin_reset_key or not hmac.compare_digest(
            (admin_key or "").encode(), self._admin_reset_key.encode()
        ):
            logger.warning("Unauthorized limit reset attempt", extra={"session_id": session_id})
            raise AuthorizationError("Not authorized to reset spin limits")

        errors = _validate_session_id(session_id)
        if errors:
            raise SpinValidationError(errors)
        session_id = session_id.strip()

        try:
            excluded = self._store.reset_session_limits(session_id)
        except HistoryStoreError as e:
            logger.exception("Failed to reset spin limits", extra={"session_id": session_id})
            raise StorageError("Could not reset spin limits. Please try again.") from e

        logger.info("Spin limits reset", extra={"session_id": session_id, "excluded_spins": excluded, "reset_by": "admin"})
        return excluded

    def _load_history(
        self,
        session_id: str,
        user_id: Optional[str],
        user_ip: Optional[str],
        now: datetime,
    ) -> SpinHistory:
        if not self._daily_limit_by_identity:
            user_id = user_ip = None

        try:
            return self._store.load(
                session_id,
                user_id=user_id,
                user_ip=user_ip,
                since=start_of_utc_day(now),
            )
        except HistoryStoreError as e:
            logger.exception("Failed to load spin history", extra={"session_id": session_id})
            raise StorageError("Could not load spin history. Please try again.") from e

    def _build_award(self, request: SpinRequest, now: datetime) -> AwardRecord:
        outcome = self._selector.draw()

        metadata = dict(request.metadata)
        if request.user_agent:
            metadata["user_agent"] = request.user_agent

        return AwardRecord.create(
            award_id=self._id_factory(),
            session_id=request.session_id,
            outcome=outcome,
            spin_angle=self._selector.derive_angle(outcome),
            spin_duration_ms=self._selector.derive_duration(),
            created_at=now,
            ttl=self._award_ttl,
            user_ip=request.user_ip,
            user_id=request.user_id,
            metadata=metadata,
        )

    def _rate_limit_error(self, eligibility: Eligibility, now: datetime) -> RateLimitError:
        if eligibility.reason is CooldownReason.COOLDOWN:
            message = f"Please wait {_format_wait(eligibility.cooldown_remaining_ms or 0)} before spinning again"
        elif eligibility.reason is CooldownReason.DAILY_LIMIT:
            message = "You have reached the daily spin limit. Come back tomorrow!"
        else:
            message = "You have used all the spins available for this session"

        return RateLimitError(
            eligibility.reason.value if eligibility.reason else "unknown",
            message,
            cooldown_remaining_ms=eligibility.cooldown_remaining_ms,
            next_spin_allowed_at=eligibility.next_eligible_at,
            now=now,
        )


__all__ = [
    "HistoryView",
    "MAX_APPEND_ATTEMPTS",
    "MAX_SESSION_ID_LENGTH",
    "SpinRequest",
    "SpinResult",
    "SpinService",
    "WheelConfig",
    "WheelStats",
    "is_ipv4",
]
