# config/__init__.py
from __future__ import annotations

from .settings import STORAGE_BACKENDS, Settings

__all__ = ["STORAGE_BACKENDS", "Settings"]
