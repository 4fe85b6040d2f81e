"""
Tests for `domain/discount_percentage.py`.

Covers contract rules:
- Values outside [0, 100], NaN and infinities are rejected.
- Values are rounded half-up to 2 decimals at construction.
- Classification tiers and price helpers.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from domain.discount_percentage import DiscountLevel, DiscountPercentage
from domain.errors import InvalidDiscountPercentage


@pytest.mark.parametrize("value", [-1, 101, float("nan"), float("inf"), float("-inf"), 100.001])
def test_out_of_range_values_are_rejected(value: float) -> None:
    with pytest.raises(InvalidDiscountPercentage):
        DiscountPercentage(value)


@pytest.mark.parametrize("value", [0, 100, 0.0, 100.0, 50])
def test_bounds_are_inclusive(value: float) -> None:
    assert DiscountPercentage(value).value == float(value)


@pytest.mark.parametrize("value", ["15", None, True])
def test_non_numeric_values_are_rejected(value: object) -> None:
    with pytest.raises(InvalidDiscountPercentage):
        DiscountPercentage(value)  # type: ignore[arg-type]


def test_value_is_rounded_half_up_to_two_decimals() -> None:
    assert DiscountPercentage(12.345).value == 12.35
    assert DiscountPercentage(12.344).value == 12.34


def test_domain_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        DiscountPercentage(-5)


def test_is_immutable() -> None:
    pct = DiscountPercentage(15)
    with pytest.raises(FrozenInstanceError):
        pct.value = 20  # type: ignore[misc]


@pytest.mark.parametrize(
    "value, level",
    [
        (0, DiscountLevel.LOW),
        (10, DiscountLevel.LOW),
        (10.01, DiscountLevel.MEDIUM),
        (25, DiscountLevel.MEDIUM),
        (30, DiscountLevel.HIGH),
        (40, DiscountLevel.HIGH),
        (40.5, DiscountLevel.PREMIUM),
        (50, DiscountLevel.PREMIUM),
    ],
)
def test_level_tiers(value: float, level: DiscountLevel) -> None:
    assert DiscountPercentage(value).level() is level


def test_price_helpers() -> None:
    pct = DiscountPercentage(15)

    assert pct.decimal == pytest.approx(0.15)
    assert pct.discount_amount(200) == Decimal("30.00")
    assert pct.final_price(200) == Decimal("170.00")
    assert pct.final_price(Decimal("19.99")) == Decimal("16.99")


def test_price_helpers_reject_negative_base_price() -> None:
    with pytest.raises(ValueError):
        DiscountPercentage(10).discount_amount(-1)


def test_display_and_messages() -> None:
    assert DiscountPercentage(15).display() == "15%"
    assert DiscountPercentage(12.5).display() == "12.5%"
    assert str(DiscountPercentage(50)) == "50%"
    assert "PREMIUM" in DiscountPercentage(50).descriptive_message()


def test_from_string_and_is_valid() -> None:
    assert DiscountPercentage.from_string("15%").value == 15
    assert DiscountPercentage.from_string(" 12.5 % ").value == 12.5

    with pytest.raises(InvalidDiscountPercentage):
        DiscountPercentage.from_string("fifteen")

    assert DiscountPercentage.is_valid(30)
    assert not DiscountPercentage.is_valid(150)


def test_comparison_and_tolerance() -> None:
    assert DiscountPercentage(10) < DiscountPercentage(20)
    assert DiscountPercentage(10) == DiscountPercentage(10.0)
    assert DiscountPercentage(10).equals(DiscountPercentage(10.004))


def test_special_discounts() -> None:
    assert DiscountPercentage(30).is_special()
    assert not DiscountPercentage(35).is_special()
    assert [p.value for p in DiscountPercentage.special_discounts()] == [5, 10, 15, 20, 25, 30, 50]
