"""
Service wiring for the API.

Each factory is cached so the process shares one store, clock and random
source. Tests swap any of them through `app.dependency_overrides`.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from functools import lru_cache

from config import Settings
from repositories.history_store import HistoryStore
from repositories.memory_history_store import InMemoryHistoryStore
from services.clock import Clock, SystemClock
from services.outcome_selector import WeightedOutcomeSelector
from services.random_source import SeededRandomSource
from services.redemption_service import RedemptionService
from services.spin_service import SpinService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.load()


@lru_cache(maxsize=1)
def get_history_store() -> HistoryStore:
    settings = get_settings()
    if settings.storage_backend == "supabase":
        from repositories.client import get_supabase_client
        from repositories.supabase_history_store import SupabaseHistoryStore

        logger.info("Using Supabase history store")
        return SupabaseHistoryStore(get_supabase_client())

    logger.info("Using in-memory history store")
    return InMemoryHistoryStore()


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_spin_service() -> SpinService:
    settings = get_settings()
    return SpinService(
        get_history_store(),
        WeightedOutcomeSelector(SeededRandomSource()),
        get_clock(),
        limits=settings.limits,
        award_ttl=timedelta(hours=settings.award_ttl_hours),
        wheel_enabled=settings.wheel_enabled,
        admin_reset_key=settings.admin_reset_key,
        daily_limit_by_identity=settings.daily_limit_by_identity,
    )


@lru_cache(maxsize=1)
def get_redemption_service() -> RedemptionService:
    return RedemptionService(get_history_store(), get_clock())


__all__ = [
    "get_clock",
    "get_history_store",
    "get_redemption_service",
    "get_settings",
    "get_spin_service",
]
