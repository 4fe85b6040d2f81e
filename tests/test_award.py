"""
Tests for `domain/award.py`.

Covers contract rules:
- spin_angle and spin_duration_ms are range-checked at construction.
- Awards expire 24 hours after creation by default.
- Redemption fails for TRY_AGAIN, already redeemed, and expired awards.
- AwardRecord is immutable; transitions return new instances.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW
from domain.award import AwardRecord
from domain.discount_percentage import DiscountPercentage
from domain.errors import InvalidAwardRecord, RedemptionNotAllowed
from domain.wheel_section import WheelSection


def test_create_sets_default_expiry(make_award) -> None:
    award = make_award()

    assert award.expires_at == NOW + timedelta(hours=24)
    assert award.discount_percentage == DiscountPercentage(15)
    assert award.section is WheelSection.DISCOUNT_15
    assert not award.is_redeemed
    assert award.redeemed_at is None


@pytest.mark.parametrize("angle", [-0.1, 3600.1])
def test_angle_out_of_range_is_rejected(make_award, angle: float) -> None:
    award = make_award()
    with pytest.raises(InvalidAwardRecord):
        replace(award, spin_angle=angle)


@pytest.mark.parametrize("duration", [999, 10001])
def test_duration_out_of_range_is_rejected(make_award, duration: int) -> None:
    award = make_award()
    with pytest.raises(InvalidAwardRecord):
        replace(award, spin_duration_ms=duration)


def test_blank_session_id_is_rejected(make_award) -> None:
    with pytest.raises(InvalidAwardRecord):
        make_award(session_id="   ")


def test_percentage_must_match_section(make_award) -> None:
    award = make_award(section=WheelSection.TRY_AGAIN)
    with pytest.raises(InvalidAwardRecord):
        replace(award, discount_percentage=DiscountPercentage(10))


def test_timestamps_must_be_utc(make_award) -> None:
    with pytest.raises(ValueError):
        make_award(created_at=datetime(2025, 3, 10, 12, 0, 0))

    with pytest.raises(ValueError):
        make_award(created_at=datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone(timedelta(hours=-5))))


def test_is_immutable(make_award) -> None:
    award = make_award()
    with pytest.raises(FrozenInstanceError):
        award.is_redeemed = True  # type: ignore[misc]


def test_expiry_boundary(make_award) -> None:
    award = make_award()

    assert not award.is_expired(award.expires_at)
    assert award.is_expired(award.expires_at + timedelta(microseconds=1))
    assert award.is_available_for_redemption(NOW)


def test_discount_code_only_for_winning_awards(make_award) -> None:
    winning = make_award(section=WheelSection.DISCOUNT_25)
    losing = make_award(section=WheelSection.TRY_AGAIN)

    assert winning.discount_code is not None
    assert winning.discount_code.startswith("INTEL25")
    assert len(winning.discount_code) == 16
    assert losing.discount_code is None
    assert not losing.is_winning()


def test_mark_as_redeemed_returns_new_record(make_award) -> None:
    award = make_award()
    redeemed_at = NOW + timedelta(hours=1)

    redeemed = award.mark_as_redeemed(redeemed_at)

    assert redeemed.is_redeemed
    assert redeemed.redeemed_at == redeemed_at
    assert redeemed.award_id == award.award_id
    assert not award.is_redeemed
    assert not redeemed.is_available_for_redemption(redeemed_at)


@pytest.mark.parametrize(
    "section, offset, redeem_twice, reason",
    [
        (WheelSection.TRY_AGAIN, timedelta(hours=1), False, "no_prize"),
        (WheelSection.DISCOUNT_10, timedelta(hours=1), True, "already_redeemed"),
        (WheelSection.DISCOUNT_10, timedelta(hours=25), False, "expired"),
    ],
)
def test_mark_as_redeemed_refusals(make_award, section, offset, redeem_twice, reason) -> None:
    award = make_award(section=section)
    now = NOW + offset
    if redeem_twice:
        award = award.mark_as_redeemed(now)

    with pytest.raises(RedemptionNotAllowed) as exc_info:
        award.mark_as_redeemed(now)

    assert exc_info.value.reason == reason


def test_redeemed_flag_requires_timestamp(make_award) -> None:
    with pytest.raises(InvalidAwardRecord):
        replace(make_award(), is_redeemed=True)


def test_extend_expiration(make_award) -> None:
    award = make_award()

    extended = award.extend_expiration(12)

    assert extended.expires_at == award.expires_at + timedelta(hours=12)
    with pytest.raises(ValueError):
        award.extend_expiration(0)


def test_time_until_expiration_display(make_award) -> None:
    award = make_award()

    assert award.time_until_expiration_display(NOW) == "24h 0m"
    assert award.time_until_expiration_display(NOW + timedelta(hours=20, minutes=47, seconds=30)) == "3h 12m"
    assert award.time_until_expiration_display(NOW + timedelta(hours=23, minutes=15)) == "45m"
    assert award.time_until_expiration_display(NOW + timedelta(hours=30)) == "Expired"
    assert award.time_until_expiration(NOW + timedelta(hours=30)) == timedelta(0)


def test_result_messages(make_award) -> None:
    assert "15%" in make_award(section=WheelSection.DISCOUNT_15).result_message()
    assert "GRAND PRIZE" in make_award(section=WheelSection.DISCOUNT_50).result_message()
    assert "Try again" in make_award(section=WheelSection.TRY_AGAIN).result_message()


def test_high_value_and_spin_statistics(make_award) -> None:
    assert make_award(section=WheelSection.DISCOUNT_30).is_high_value_prize()
    assert not make_award(section=WheelSection.DISCOUNT_25).is_high_value_prize()

    stats = make_award().spin_statistics()
    assert stats["full_rotations"] == 4  # 1500 degrees
    assert stats["final_angle"] == pytest.approx(60.0)
    assert stats["spin_duration_seconds"] == 4.0


def test_create_keeps_caller_context(make_award) -> None:
    award = make_award(user_id="u1", user_ip="203.0.113.7", metadata={"source": "landing"})

    assert award.user_id == "u1"
    assert award.user_ip == "203.0.113.7"
    assert award.metadata == {"source": "landing"}
    assert isinstance(award, AwardRecord)
