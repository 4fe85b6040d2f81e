"""
Discount code validation and redemption.

`validate` checks shape only: prefix, two percentage digits, alphanumeric
suffix, and a percentage the wheel could have awarded. It never touches the
store, so a well-formed code may still be unknown.

`redeem` looks the code up and delegates the check-then-mark sequence to the
store's atomic `mark_redeemed`, so concurrent redemptions of one code succeed
at most once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from domain.award import AwardRecord
from domain.discount_code import decode_percentage, normalize_code
from domain.errors import RedemptionNotAllowed
from repositories.history_store import HistoryStore, HistoryStoreError
from services.clock import Clock
from services.errors import StorageError

logger = logging.getLogger(__name__)

MIN_CODE_PERCENTAGE = 1
MAX_CODE_PERCENTAGE = 50


class RedemptionReason(str, Enum):
    OK = "ok"
    INVALID_FORMAT = "invalid_format"
    INVALID_PERCENTAGE = "invalid_percentage"
    NOT_FOUND = "not_found"
    NO_PRIZE = "no_prize"
    EXPIRED = "expired"
    ALREADY_REDEEMED = "already_redeemed"
    REDEEMED = "redeemed"


_MESSAGES = {
    RedemptionReason.OK: "Valid code: {percentage}% discount",
    RedemptionReason.INVALID_FORMAT: "Invalid discount code",
    RedemptionReason.INVALID_PERCENTAGE: "Invalid discount code",
    RedemptionReason.NOT_FOUND: "Discount code not found",
    RedemptionReason.NO_PRIZE: "This result has no discount to redeem",
    RedemptionReason.EXPIRED: "This discount code has expired",
    RedemptionReason.ALREADY_REDEEMED: "This discount code has already been redeemed",
    RedemptionReason.REDEEMED: "Discount of {percentage}% redeemed successfully",
}


@dataclass(frozen=True, slots=True)
class CodeValidation:
    code: str
    valid: bool
    reason: RedemptionReason
    percentage: Optional[int] = None

    @property
    def message(self) -> str:
        return _MESSAGES[self.reason].format(percentage=self.percentage)


@dataclass(frozen=True, slots=True)
class RedemptionOutcome:
    code: str
    redeemed: bool
    reason: RedemptionReason
    award: Optional[AwardRecord] = None

    @property
    def message(self) -> str:
        percentage = self.award.discount_percentage.display().rstrip("%") if self.award else None
        return _MESSAGES[self.reason].format(percentage=percentage)


class RedemptionService:
    def __init__(self, store: HistoryStore, clock: Clock):
        self._store = store
        self._clock = clock

    def validate(self, code: Optional[str]) -> CodeValidation:
        normalized = normalize_code(code or "")

        percentage = decode_percentage(normalized)
        if percentage is None:
            return CodeValidation(code=normalized, valid=False, reason=RedemptionReason.INVALID_FORMAT)

        if not MIN_CODE_PERCENTAGE <= percentage <= MAX_CODE_PERCENTAGE:
            return CodeValidation(
                code=normalized,
                valid=False,
                reason=RedemptionReason.INVALID_PERCENTAGE,
                percentage=percentage,
            )

        return CodeValidation(code=normalized, valid=True, reason=RedemptionReason.OK, percentage=percentage)

    def redeem(self, code: Optional[str]) -> RedemptionOutcome:
        validation = self.validate(code)
        if not validation.valid:
            return RedemptionOutcome(code=validation.code, redeemed=False, reason=validation.reason)

        now = self._clock.now()
        try:
            award = self._store.find_by_code(validation.code)
            if award is None:
                return RedemptionOutcome(code=validation.code, redeemed=False, reason=RedemptionReason.NOT_FOUND)

            # The store re-checks prize / redeemed / expiry under its lock.
            redeemed = self._store.mark_redeemed(validation.code, now)
        except LookupError:
            return RedemptionOutcome(code=validation.code, redeemed=False, reason=RedemptionReason.NOT_FOUND)
        except RedemptionNotAllowed as e:
            logger.info(
                "Redemption refused",
                extra={"discount_code": validation.code, "reason": e.reason},
            )
            return RedemptionOutcome(
                code=validation.code,
                redeemed=False,
                reason=RedemptionReason(e.reason),
                award=award,
            )
        except HistoryStoreError as e:
            logger.exception("Failed to redeem discount code", extra={"discount_code": validation.code})
            raise StorageError("Could not redeem the discount code. Please try again.") from e

        logger.info(
            "Discount redeemed",
            extra={
                "discount_code": validation.code,
                "award_id": str(redeemed.award_id),
                "discount_percentage": redeemed.discount_percentage.value,
            },
        )
        return RedemptionOutcome(
            code=validation.code,
            redeemed=True,
            reason=RedemptionReason.REDEEMED,
            award=redeemed,
        )


__all__ = [
    "CodeValidation",
    "MAX_CODE_PERCENTAGE",
    "MIN_CODE_PERCENTAGE",
    "RedemptionOutcome",
    "RedemptionReason",
    "RedemptionService",
]
