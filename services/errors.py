"""
Service error taxonomy.

Every error the API can surface derives from WheelServiceError and carries
what the HTTP layer needs to render a structured body:
- error_type: stable machine-readable category
- code: stable machine-readable code within the category
- retryable: whether the same request may succeed later unchanged
- status_code: HTTP status the API maps it to

Validation and rate-limit errors are expected control flow. Storage and
configuration errors mean the request could not be served.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Optional


class WheelServiceError(Exception):
    error_type: str = "internal_error"
    code: str = "INTERNAL_ERROR"
    retryable: bool = False
    status_code: int = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    @property
    def retry_after_seconds(self) -> Optional[int]:
        return None

    def details(self) -> Optional[Any]:
        return None


class SpinValidationError(WheelServiceError):
    """Raised when a request is malformed (caller bug, not retryable as-is)."""

    error_type = "validation_error"
    code = "INVALID_REQUEST"
    status_code = 400

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        super().__init__(f"Invalid request: {summary}")

    def details(self) -> Optional[Any]:
        return self.errors


class RateLimitError(WheelServiceError):
    """
    Raised when the caller may not spin right now.

    reason: "cooldown", "daily_limit" or "session_limit".
    """

    error_type = "rate_limit"
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(
        self,
        reason: str,
        message: str,
        *,
        cooldown_remaining_ms: Optional[int] = None,
        next_spin_allowed_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ):
        self.reason = reason
        self.cooldown_remaining_ms = cooldown_remaining_ms
        self.next_spin_allowed_at = next_spin_allowed_at
        self._now = now
        super().__init__(message)

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        # A session cap only resets with a new session.
        return self.next_spin_allowed_at is not None

    @property
    def retry_after_seconds(self) -> Optional[int]:
        if self.cooldown_remaining_ms is not None:
            return max(1, math.ceil(self.cooldown_remaining_ms / 1000))
        if self.next_spin_allowed_at is not None and self._now is not None:
            seconds = (self.next_spin_allowed_at - self._now).total_seconds()
            return max(1, math.ceil(seconds))
        return None

    def details(self) -> Optional[Any]:
        return {
            "reason": self.reason,
            "cooldownRemainingMs": self.cooldown_remaining_ms,
            "nextSpinAllowedAt": self.next_spin_allowed_at.isoformat() if self.next_spin_allowed_at else None,
        }


class StorageError(WheelServiceError):
    """Raised when the history store fails; no award is recorded."""

    error_type = "storage_error"
    code = "STORAGE_UNAVAILABLE"
    retryable = True
    status_code = 503


class ConfigurationError(WheelServiceError):
    """Raised at startup when wheel configuration is unusable."""

    error_type = "configuration_error"
    code = "INVALID_CONFIGURATION"
    status_code = 500


class WheelDisabledError(WheelServiceError):
    error_type = "wheel_disabled"
    code = "WHEEL_DISABLED"
    status_code = 503


class AuthorizationError(WheelServiceError):
    error_type = "authorization_error"
    code = "FORBIDDEN"
    status_code = 403


__all__ = [
    "AuthorizationError",
    "ConfigurationError",
    "RateLimitError",
    "SpinValidationError",
    "StorageError",
    "WheelDisabledError",
    "WheelServiceError",
]
