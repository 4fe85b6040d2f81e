"""
Weighted outcome selection for the discount wheel.

Draws one outcome from the static probability table (weighted, not uniform
over the sections) and derives the presentation angle and spin duration the
client animates.
"""

from __future__ import annotations

from typing import Sequence

from domain.errors import OutcomeTableError
from domain.wheel_section import OUTCOME_TABLE, Outcome, validate_outcome_table
from services.errors import ConfigurationError
from services.random_source import RandomSource

MIN_FULL_ROTATIONS = 3
MAX_FULL_ROTATIONS = 6

MIN_SPIN_DURATION_MS = 3000
MAX_SPIN_DURATION_MS = 5000


class WeightedOutcomeSelector:
    """
    Weighted random selection over a validated outcome table.

    The table is validated once here; a malformed table is a startup failure,
    never a per-request one.
    """

    def __init__(self, random_source: RandomSource, table: Sequence[Outcome] = OUTCOME_TABLE):
        try:
            validate_outcome_table(table)
        except OutcomeTableError as e:
            raise ConfigurationError(f"Invalid wheel outcome table: {e}") from e

        self._random = random_source
        self._table = tuple(table)

        total = sum(outcome.probability for outcome in self._table)
        self._weights = tuple(outcome.probability / total for outcome in self._table)

    @property
    def table(self) -> tuple[Outcome, ...]:
        return self._table

    @property
    def slice_width(self) -> float:
        return 360 / len(self._table)

    def draw(self) -> Outcome:
        """
        Draw one outcome.

        Walks the table accumulating normalized weight and returns the first
        row whose cumulative weight meets or exceeds the draw. If float drift
        leaves the draw above every cumulative sum, the last row wins.
        """

        roll = self._random.next_float()
        cumulative = 0.0
        for outcome, weight in zip(self._table, self._weights):
            cumulative += weight
            if roll <= cumulative:
                return outcome
        return self._table[-1]

    def derive_angle(self, outcome: Outcome) -> float:
        """
        Final wheel angle (degrees) that lands on `outcome`.

        base slice angle + random offset within the slice + 3..6 whole turns.
        Range: [1080, 2520).
        """

        index = self._index_of(outcome)
        width = self.slice_width
        base = index * width
        offset = self._random.next_float() * width
        rotations = self._random.next_int(MIN_FULL_ROTATIONS, MAX_FULL_ROTATIONS) * 360
        return base + offset + rotations

    def derive_duration(self) -> int:
        return self._random.next_int(MIN_SPIN_DURATION_MS, MAX_SPIN_DURATION_MS)

    def _index_of(self, outcome: Outcome) -> int:
        for index, candidate in enumerate(self._table):
            if candidate.section is outcome.section:
                return index
        raise ValueError(f"Outcome {outcome.section.value} is not on this wheel")


__all__ = [
    "MAX_FULL_ROTATIONS",
    "MAX_SPIN_DURATION_MS",
    "MIN_FULL_ROTATIONS",
    "MIN_SPIN_DURATION_MS",
    "WeightedOutcomeSelector",
]
