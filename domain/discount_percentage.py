"""
Domain: DiscountPercentage value object.

Contract:
- Wraps a single percentage in [0, 100].
- The value is rounded to 2 decimals (half-up) at construction.
- Construction fails for non-numeric, NaN, infinite, negative, or >100 values.
- Immutable once created.

Classification tiers:
- low:     value <= 10
- medium:  value <= 25
- high:    value <= 40
- premium: value > 40
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from numbers import Real
from typing import Union

from .errors import InvalidDiscountPercentage

MIN_DISCOUNT = 0
MAX_DISCOUNT = 100

# Discounts the wheel can award.
SPECIAL_DISCOUNTS = (5, 10, 15, 20, 25, 30, 50)

_CENTS = Decimal("0.01")

Money = Union[Decimal, int, float]


class DiscountLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PREMIUM = "premium"


def _round_half_up(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _to_money(base_price: Money) -> Decimal:
    if isinstance(base_price, bool) or not isinstance(base_price, (Decimal, int, float)):
        raise ValueError("base_price must be a number")
    price = Decimal(str(base_price))
    if not price.is_finite() or price < 0:
        raise ValueError("base_price must be a non-negative number")
    return price


@dataclass(frozen=True, slots=True, order=True)
class DiscountPercentage:
    """
    Validated discount percentage.

    Equality and ordering compare the rounded value; use `equals()` for the
    0.01 tolerance comparison.
    """

    value: float

    def __post_init__(self) -> None:
        raw = self.value
        if isinstance(raw, bool) or not isinstance(raw, Real):
            raise InvalidDiscountPercentage("Discount percentage must be a number")
        if math.isnan(raw):
            raise InvalidDiscountPercentage("Discount percentage cannot be NaN")
        if not math.isfinite(raw):
            raise InvalidDiscountPercentage("Discount percentage must be finite")
        if raw < MIN_DISCOUNT:
            raise InvalidDiscountPercentage(f"Discount percentage cannot be lower than {MIN_DISCOUNT}%")
        if raw > MAX_DISCOUNT:
            raise InvalidDiscountPercentage(f"Discount percentage cannot be greater than {MAX_DISCOUNT}%")

        object.__setattr__(self, "value", float(_round_half_up(Decimal(str(raw)))))

    @property
    def decimal(self) -> float:
        """The percentage as a fraction (15% -> 0.15)."""
        return self.value / 100

    def discount_amount(self, base_price: Money) -> Decimal:
        """Amount taken off `base_price`, rounded to cents."""

        price = _to_money(base_price)
        return _round_half_up(price * Decimal(str(self.value)) / Decimal(100))

    def final_price(self, base_price: Money) -> Decimal:
        """Price after applying this discount, rounded to cents."""

        price = _to_money(base_price)
        return _round_half_up(price - self.discount_amount(price))

    def level(self) -> DiscountLevel:
        if self.value <= 10:
            return DiscountLevel.LOW
        if self.value <= 25:
            return DiscountLevel.MEDIUM
        if self.value <= 40:
            return DiscountLevel.HIGH
        return DiscountLevel.PREMIUM

    def is_special(self) -> bool:
        return self.value in SPECIAL_DISCOUNTS

    def display(self) -> str:
        """'15%' for whole numbers, '12.5%' otherwise."""

        if self.value.is_integer():
            return f"{int(self.value)}%"
        return f"{self.value:.1f}%"

    def descriptive_message(self) -> str:
        shown = self.display()
        level = self.level()
        if level is DiscountLevel.LOW:
            return f"Enjoy this {shown} discount!"
        if level is DiscountLevel.MEDIUM:
            return f"A great {shown} discount, just for you!"
        if level is DiscountLevel.HIGH:
            return f"An incredible {shown} discount! Don't miss it."
        return f"PREMIUM {shown} DISCOUNT! A unique, special offer."

    def equals(self, other: "DiscountPercentage") -> bool:
        return abs(self.value - other.value) < 0.01

    def __str__(self) -> str:
        return self.display()

    @staticmethod
    def from_string(text: str) -> "DiscountPercentage":
        """Parse '15%', '15', or '12.5 %'."""

        if not isinstance(text, str):
            raise InvalidDiscountPercentage("Discount percentage text must be a string")
        cleaned = text.replace("%", "").strip()
        try:
            numeric = float(cleaned)
        except ValueError:
            raise InvalidDiscountPercentage(f"Cannot parse a discount percentage from {text!r}") from None
        return DiscountPercentage(numeric)

    @staticmethod
    def is_valid(value: object) -> bool:
        try:
            DiscountPercentage(value)  # type: ignore[arg-type]
        except InvalidDiscountPercentage:
            return False
        return True

    @staticmethod
    def special_discounts() -> list["DiscountPercentage"]:
        return [DiscountPercentage(pct) for pct in SPECIAL_DISCOUNTS]


__all__ = [
    "DiscountLevel",
    "DiscountPercentage",
    "SPECIAL_DISCOUNTS",
]
