"""
Random source abstraction.

Outcome draws go through an injected RandomSource so they are reproducible
under a fixed seed.
"""

from __future__ import annotations

import random
from typing import Optional, Protocol


class RandomSource(Protocol):
    def next_float(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def next_int(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both inclusive."""
        ...


class SeededRandomSource:
    """RandomSource backed by its own `random.Random` instance."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def next_float(self) -> float:
        return self._rng.random()

    def next_int(self, low: int, high: int) -> int:
        if low > high:
            raise ValueError("low must be <= high")
        return self._rng.randint(low, high)


__all__ = ["RandomSource", "SeededRandomSource"]
