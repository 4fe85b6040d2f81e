"""
Tests for `config/settings.py`.
"""

from __future__ import annotations

import pytest

from config import Settings

_KEYS = (
    "MAX_SPINS_PER_SESSION",
    "MAX_SPINS_PER_DAY",
    "SPIN_COOLDOWN_MS",
    "WHEEL_ENABLED",
    "DAILY_LIMIT_BY_IDENTITY",
    "AWARD_TTL_HOURS",
    "STORAGE_BACKEND",
    "ADMIN_RESET_KEY",
    "LOG_LEVEL",
    "ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    settings = Settings.load()

    assert settings.max_spins_per_session == 3
    assert settings.max_spins_per_day == 10
    assert settings.spin_cooldown_ms == 300_000
    assert settings.wheel_enabled is True
    assert settings.award_ttl_hours == 24
    assert settings.storage_backend == "memory"
    assert settings.admin_reset_key is None
    assert settings.daily_limit_by_identity is False
    assert not settings.is_dev


def test_values_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("MAX_SPINS_PER_SESSION", "5")
    monkeypatch.setenv("MAX_SPINS_PER_DAY", " 20 ")
    monkeypatch.setenv("SPIN_COOLDOWN_MS", "0")
    monkeypatch.setenv("STORAGE_BACKEND", "Supabase")
    monkeypatch.setenv("ADMIN_RESET_KEY", "s3cret")
    monkeypatch.setenv("ENVIRONMENT", "development")

    settings = Settings.load()

    assert settings.limits.max_spins_per_session == 5
    assert settings.limits.max_spins_per_day == 20
    assert settings.limits.cooldown_ms == 0
    assert settings.storage_backend == "supabase"
    assert settings.admin_reset_key == "s3cret"
    assert settings.is_dev


@pytest.mark.parametrize("raw, enabled", [("false", False), ("FALSE", False), ("true", True), ("0", True), ("", True)])
def test_only_false_disables_the_wheel(monkeypatch, raw, enabled) -> None:
    monkeypatch.setenv("WHEEL_ENABLED", raw)

    assert Settings.load().wheel_enabled is enabled


@pytest.mark.parametrize(
    "key, value",
    [
        ("MAX_SPINS_PER_DAY", "ten"),
        ("MAX_SPINS_PER_SESSION", "0"),
        ("SPIN_COOLDOWN_MS", "-1"),
        ("AWARD_TTL_HOURS", "0"),
        ("STORAGE_BACKEND", "redis"),
    ],
)
def test_malformed_values_fail_fast(monkeypatch, key, value) -> None:
    monkeypatch.setenv(key, value)

    with pytest.raises(RuntimeError):
        Settings.load()


@pytest.mark.parametrize("raw, enabled", [("true", True), ("TRUE", True), ("1", False), ("", False)])
def test_identity_matching_is_opt_in(monkeypatch, raw, enabled) -> None:
    monkeypatch.setenv("DAILY_LIMIT_BY_IDENTITY", raw)

    assert Settings.load().daily_limit_by_identity is enabled
