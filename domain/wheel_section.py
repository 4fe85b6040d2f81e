"""
Domain: wheel sections and the static outcome table.

Contract excerpts implemented here:
- The wheel has eight sections: seven discount tiers and one "no prize" slot.
- Each section has a stable identifier (WheelSection) distinct from its
  display label, so label text can change without touching stored records.
- The probabilities of the outcome table sum to exactly 100.
- Table order is wheel order; slice angles are derived from it.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from .errors import OutcomeTableError

TOTAL_PROBABILITY = 100


class WheelSection(str, Enum):
    DISCOUNT_5 = "DISCOUNT_5"
    DISCOUNT_10 = "DISCOUNT_10"
    DISCOUNT_15 = "DISCOUNT_15"
    DISCOUNT_20 = "DISCOUNT_20"
    DISCOUNT_25 = "DISCOUNT_25"
    DISCOUNT_30 = "DISCOUNT_30"
    DISCOUNT_50 = "DISCOUNT_50"
    TRY_AGAIN = "TRY_AGAIN"

    @property
    def is_prize(self) -> bool:
        return self is not WheelSection.TRY_AGAIN


@dataclass(frozen=True, slots=True)
class Outcome:
    """One configured slot on the wheel."""

    section: WheelSection
    label: str
    discount_percentage: int
    probability: float
    color: str
    text_color: str


@dataclass(frozen=True, slots=True)
class ResultCopy:
    """Static copy shown to the visitor for a section."""

    title: str
    message: str
    action: str


OUTCOME_TABLE: tuple[Outcome, ...] = (
    Outcome(WheelSection.DISCOUNT_5, "5% OFF", 5, 25, "#FF6B6B", "#FFFFFF"),
    Outcome(WheelSection.DISCOUNT_10, "10% OFF", 10, 20, "#4ECDC4", "#FFFFFF"),
    Outcome(WheelSection.DISCOUNT_15, "15% OFF", 15, 15, "#45B7D1", "#FFFFFF"),
    Outcome(WheelSection.DISCOUNT_20, "20% OFF", 20, 15, "#96CEB4", "#FFFFFF"),
    Outcome(WheelSection.DISCOUNT_25, "25% OFF", 25, 10, "#FFEAA7", "#2D3436"),
    Outcome(WheelSection.DISCOUNT_30, "30% OFF", 30, 8, "#DDA0DD", "#FFFFFF"),
    Outcome(WheelSection.DISCOUNT_50, "50% OFF", 50, 2, "#FFD700", "#2D3436"),
    Outcome(WheelSection.TRY_AGAIN, "Try Again", 0, 5, "#74B9FF", "#FFFFFF"),
)

_CLAIM_ACTION = "Complete the quote form to claim your discount"

RESULT_COPY: dict[WheelSection, ResultCopy] = {
    WheelSection.DISCOUNT_5: ResultCopy("Congratulations!", "You won 5% off our services!", _CLAIM_ACTION),
    WheelSection.DISCOUNT_10: ResultCopy("Excellent!", "You won 10% off our services!", _CLAIM_ACTION),
    WheelSection.DISCOUNT_15: ResultCopy("Great!", "You won 15% off our services!", _CLAIM_ACTION),
    WheelSection.DISCOUNT_20: ResultCopy("Fantastic!", "You won 20% off our services!", _CLAIM_ACTION),
    WheelSection.DISCOUNT_25: ResultCopy("Incredible!", "You won 25% off our services!", _CLAIM_ACTION),
    WheelSection.DISCOUNT_30: ResultCopy("Impressive!", "You won 30% off our services!", _CLAIM_ACTION),
    WheelSection.DISCOUNT_50: ResultCopy(
        "GRAND PRIZE!",
        "CONGRATULATIONS! You won our grand prize: 50% off!",
        "Complete the quote form right away to claim this discount",
    ),
    WheelSection.TRY_AGAIN: ResultCopy(
        "So close",
        "No prize this time, but don't give up. Try again!",
        "You can spin the wheel again in a few minutes",
    ),
}


def validate_outcome_table(table: Sequence[Outcome]) -> None:
    """
    Fail fast on a malformed outcome table.

    Invariants:
    - The table is non-empty.
    - Sections are unique.
    - Every probability is positive and finite.
    - Probabilities sum to exactly TOTAL_PROBABILITY.
    - Discount percentages fall in [0, 50]; only TRY_AGAIN carries 0.
    """

    if not table:
        raise OutcomeTableError("Outcome table must not be empty")

    seen: set[WheelSection] = set()
    for outcome in table:
        if outcome.section in seen:
            raise OutcomeTableError(f"Duplicate section in outcome table: {outcome.section.value}")
        seen.add(outcome.section)

        if not outcome.probability > 0 or not math.isfinite(outcome.probability):
            raise OutcomeTableError(
                f"Probability for {outcome.section.value} must be a positive finite number"
            )
        if not 0 <= outcome.discount_percentage <= 50:
            raise OutcomeTableError(
                f"Discount for {outcome.section.value} must be between 0 and 50"
            )
        if outcome.section.is_prize != (outcome.discount_percentage > 0):
            raise OutcomeTableError(
                f"Only the no-prize section may carry a 0% discount ({outcome.section.value})"
            )

    total = sum(outcome.probability for outcome in table)
    if abs(total - TOTAL_PROBABILITY) > 1e-9:
        raise OutcomeTableError(
            f"Outcome probabilities must sum to {TOTAL_PROBABILITY}, got {total}"
        )


def get_outcome(section: WheelSection, table: Sequence[Outcome] = OUTCOME_TABLE) -> Optional[Outcome]:
    for outcome in table:
        if outcome.section is section:
            return outcome
    return None


def get_result_copy(section: WheelSection) -> ResultCopy:
    return RESULT_COPY.get(section, RESULT_COPY[WheelSection.TRY_AGAIN])


def discount_outcomes(table: Sequence[Outcome] = OUTCOME_TABLE) -> list[Outcome]:
    """All outcomes that carry a discount (excludes TRY_AGAIN)."""

    return [outcome for outcome in table if outcome.discount_percentage > 0]


# Fail at import time rather than on the first spin.
validate_outcome_table(OUTCOME_TABLE)


__all__ = [
    "OUTCOME_TABLE",
    "Outcome",
    "ResultCopy",
    "TOTAL_PROBABILITY",
    "WheelSection",
    "discount_outcomes",
    "get_outcome",
    "get_result_copy",
    "validate_outcome_table",
]
