"""
Domain: AwardRecord entity (the outcome of one spin).

Contract excerpts implemented here:
- An AwardRecord is uniquely identified by award_id (UUID).
- spin_angle must fall in [0, 3600] degrees and spin_duration_ms in
  [1000, 10000] milliseconds, or construction fails.
- Awards expire 24 hours after creation by default.
- Redemption fails for the no-prize section, for an already redeemed award,
  and for an expired award.
- Records are never deleted; they only expire logically.

Immutability:
- Like other historical records, an AwardRecord is frozen. State transitions
  (redemption, expiry extension) return a new instance which the store
  persists in place of the old one.

All timestamps must be passed explicitly; no implicit 'now' is used.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Mapping, Optional
from uuid import UUID

from .discount_code import encode_discount_code
from .discount_percentage import DiscountPercentage
from .errors import InvalidAwardRecord, RedemptionNotAllowed
from .time import require_utc_timestamp
from .wheel_section import Outcome, WheelSection

DEFAULT_AWARD_TTL = timedelta(hours=24)

MIN_SPIN_ANGLE = 0
MAX_SPIN_ANGLE = 360 * 10
MIN_SPIN_DURATION_MS = 1000
MAX_SPIN_DURATION_MS = 10000

HIGH_VALUE_THRESHOLD = 30


@dataclass(frozen=True, slots=True)
class AwardRecord:
    """
    Persisted result of a spin: outcome, discount value, expiry and
    redemption state.
    """

    award_id: UUID
    session_id: str
    section: WheelSection
    discount_percentage: DiscountPercentage
    spin_angle: float
    spin_duration_ms: int
    created_at: datetime
    expires_at: datetime
    user_ip: Optional[str] = None
    user_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    is_redeemed: bool = False
    redeemed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not self.session_id or not self.session_id.strip():
            raise InvalidAwardRecord("session_id is required")
        if not MIN_SPIN_ANGLE <= self.spin_angle <= MAX_SPIN_ANGLE:
            raise InvalidAwardRecord(
                f"spin_angle must be between {MIN_SPIN_ANGLE} and {MAX_SPIN_ANGLE} degrees"
            )
        if not MIN_SPIN_DURATION_MS <= self.spin_duration_ms <= MAX_SPIN_DURATION_MS:
            raise InvalidAwardRecord(
                f"spin_duration_ms must be between {MIN_SPIN_DURATION_MS} and {MAX_SPIN_DURATION_MS}"
            )
        if self.section.is_prize != (self.discount_percentage.value > 0):
            raise InvalidAwardRecord(
                f"discount {self.discount_percentage} does not match section {self.section.value}"
            )

        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("expires_at", self.expires_at)
        if self.redeemed_at is not None:
            require_utc_timestamp("redeemed_at", self.redeemed_at)
        if self.is_redeemed and self.redeemed_at is None:
            raise InvalidAwardRecord("redeemed awards must carry redeemed_at")

    @staticmethod
    def create(
        *,
        award_id: UUID,
        session_id: str,
        outcome: Outcome,
        spin_angle: float,
        spin_duration_ms: int,
        created_at: datetime,
        ttl: timedelta = DEFAULT_AWARD_TTL,
        user_ip: Optional[str] = None,
        user_id: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> "AwardRecord":
        """Build a fresh, unredeemed award for a drawn outcome."""

        require_utc_timestamp("created_at", created_at)
        return AwardRecord(
            award_id=award_id,
            session_id=session_id,
            section=outcome.section,
            discount_percentage=DiscountPercentage(outcome.discount_percentage),
            spin_angle=spin_angle,
            spin_duration_ms=spin_duration_ms,
            created_at=created_at,
            expires_at=created_at + ttl,
            user_ip=user_ip or None,
            user_id=user_id or None,
            metadata=dict(metadata or {}),
        )

    def is_winning(self) -> bool:
        return self.section.is_prize

    def is_expired(self, now: datetime) -> bool:
        require_utc_timestamp("now", now)
        return now > self.expires_at

    def is_available_for_redemption(self, now: datetime) -> bool:
        return self.is_winning() and not self.is_redeemed and not self.is_expired(now)

    @property
    def discount_code(self) -> Optional[str]:
        """The code handed to the visitor; None for the no-prize section."""

        if not self.is_winning():
            return None
        return encode_discount_code(int(self.discount_percentage.value), self.award_id, self.created_at)

    def mark_as_redeemed(self, now: datetime) -> "AwardRecord":
        """Return the redeemed version of this award."""

        if not self.is_winning():
            raise RedemptionNotAllowed("no_prize", "A 'Try Again' result cannot be redeemed")
        if self.is_redeemed:
            raise RedemptionNotAllowed("already_redeemed", "This discount has already been redeemed")
        if self.is_expired(now):
            raise RedemptionNotAllowed("expired", "This discount has expired")
        return replace(self, is_redeemed=True, redeemed_at=now)

    def extend_expiration(self, additional_hours: float) -> "AwardRecord":
        if additional_hours <= 0:
            raise ValueError("additional_hours must be greater than 0")
        return replace(self, expires_at=self.expires_at + timedelta(hours=additional_hours))

    def time_until_expiration(self, now: datetime) -> timedelta:
        require_utc_timestamp("now", now)
        return max(timedelta(0), self.expires_at - now)

    def time_until_expiration_display(self, now: datetime) -> str:
        remaining = self.time_until_expiration(now)
        if remaining == timedelta(0):
            return "Expired"
        total_minutes = int(remaining.total_seconds() // 60)
        hours, minutes = divmod(total_minutes, 60)
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    def result_message(self) -> str:
        shown = self.discount_percentage.display()
        if self.section is WheelSection.TRY_AGAIN:
            return "Don't give up! Try again later."
        if self.section is WheelSection.DISCOUNT_50:
            return f"CONGRATULATIONS! You won our GRAND PRIZE: {shown} off!"
        return f"Excellent! You won a {shown} discount on our services."

    def is_high_value_prize(self) -> bool:
        return self.discount_percentage.value >= HIGH_VALUE_THRESHOLD

    def spin_statistics(self) -> dict[str, Any]:
        return {
            "full_rotations": int(self.spin_angle // 360),
            "final_angle": self.spin_angle % 360,
            "spin_duration_seconds": self.spin_duration_ms / 1000,
            "avg_spin_speed": self.spin_angle / self.spin_duration_ms,  # degrees per ms
            "is_high_value_prize": self.is_high_value_prize(),
        }


__all__ = [
    "AwardRecord",
    "DEFAULT_AWARD_TTL",
    "MAX_SPIN_ANGLE",
    "MAX_SPIN_DURATION_MS",
    "MIN_SPIN_ANGLE",
    "MIN_SPIN_DURATION_MS",
]
