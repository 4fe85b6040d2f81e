from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from domain.spin_history import SpinLimits

STORAGE_BACKENDS = ("memory", "supabase")


def _to_int(value: str, key_name: str) -> int:
    try:
        return int(value)
    except ValueError as e:
        raise RuntimeError(f"Invalid integer for {key_name}: {value!r}") from e


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = (env.get(key) or "").strip()
    return _to_int(raw, key) if raw else default


@dataclass(frozen=True, slots=True)
class Settings:
    # --- spin limits ---
    max_spins_per_session: int = 3
    max_spins_per_day: int = 10
    spin_cooldown_ms: int = 5 * 60 * 1000
    daily_limit_by_identity: bool = False  # also count same user_id / user_ip toward the daily cap

    # --- wheel ---
    wheel_enabled: bool = True
    award_ttl_hours: int = 24

    # --- storage ---
    storage_backend: str = "memory"  # memory | supabase

    # --- admin ---
    admin_reset_key: Optional[str] = None

    # --- environment ---
    log_level: str = "INFO"
    environment: str = "production"  # production | development

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() in {"dev", "development", "local"}

    @property
    def limits(self) -> SpinLimits:
        return SpinLimits(
            max_spins_per_session=self.max_spins_per_session,
            max_spins_per_day=self.max_spins_per_day,
            cooldown_ms=self.spin_cooldown_ms,
        )

    @classmethod
    def load(cls) -> "Settings":
        """
        Loads from process env (and .env if present).
        Fails fast on malformed values.
        """
        load_dotenv()
        env = os.environ

        max_spins_per_session = _int_env(env, "MAX_SPINS_PER_SESSION", 3)
        max_spins_per_day = _int_env(env, "MAX_SPINS_PER_DAY", 10)
        spin_cooldown_ms = _int_env(env, "SPIN_COOLDOWN_MS", 5 * 60 * 1000)
        award_ttl_hours = _int_env(env, "AWARD_TTL_HOURS", 24)

        # Only an explicit "false" turns the wheel off.
        wheel_enabled = (env.get("WHEEL_ENABLED") or "").strip().lower() != "false"
        daily_limit_by_identity = (env.get("DAILY_LIMIT_BY_IDENTITY") or "").strip().lower() == "true"

        storage_backend = (env.get("STORAGE_BACKEND") or "memory").strip().lower() or "memory"
        if storage_backend not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"Invalid STORAGE_BACKEND: {storage_backend!r} (expected one of {', '.join(STORAGE_BACKENDS)})"
            )

        admin_reset_key = (env.get("ADMIN_RESET_KEY") or "").strip() or None
        log_level = (env.get("LOG_LEVEL") or "INFO").strip().upper() or "INFO"
        environment = (env.get("ENVIRONMENT") or "production").strip() or "production"

        settings = cls(
            max_spins_per_session=max_spins_per_session,
            max_spins_per_day=max_spins_per_day,
            spin_cooldown_ms=spin_cooldown_ms,
            daily_limit_by_identity=daily_limit_by_identity,
            wheel_enabled=wheel_enabled,
            award_ttl_hours=award_ttl_hours,
            storage_backend=storage_backend,
            admin_reset_key=admin_reset_key,
            log_level=log_level,
            environment=environment,
        )

        try:
            settings.limits
        except ValueError as e:
            raise RuntimeError(f"Invalid spin limits: {e}") from e
        if award_ttl_hours < 1:
            raise RuntimeError(f"Invalid AWARD_TTL_HOURS: {award_ttl_hours} (must be >= 1)")

        return settings


__all__ = ["STORAGE_BACKENDS", "Settings"]
