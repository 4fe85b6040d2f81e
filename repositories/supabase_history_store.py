"""
Supabase-backed HistoryStore (persistence).

This module only persists and fetches AwardRecords. Atomicity is delegated to
PostgreSQL functions invoked through `rpc()`:

- append_wheel_spin_atomic(p_session_id, p_expected_version, p_award)
  Locks the session's version row (FOR UPDATE), compares it with the caller's
  expected version, inserts the spin and bumps the version in one
  transaction. Returns {"success": true, "version": n},
  {"success": false, "error": "VERSION_CONFLICT", "actual_version": n}, or
  {"success": false, "error": "DUPLICATE_CODE"} when the unique constraint
  on wheel_spins.discount_code rejects the insert.

- redeem_wheel_award_atomic(p_discount_code, p_redeemed_at)
  Locks the award row, checks prize / redeemed / expiry against
  p_redeemed_at and marks it redeemed. Returns {"success": true, "award": row}
  or {"success": false, "error": "NOT_FOUND" | "NO_PRIZE" |
  "ALREADY_REDEEMED" | "EXPIRED", "message": ...}.

- reset_wheel_session_limits(p_session_id)
  Clears counts_toward_limits for the session's spins and bumps its version.
  Returns {"success": true, "excluded": n}.

Tables: `wheel_spins` (one row per award) and `wheel_sessions`
(session_id, version).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional
from uuid import UUID

from postgrest.exceptions import APIError

from domain.award import AwardRecord
from domain.discount_code import normalize_code
from domain.discount_percentage import DiscountPercentage
from domain.errors import RedemptionNotAllowed
from domain.spin_history import SpinHistory
from domain.time import parse_utc_datetime, require_utc_timestamp
from domain.wheel_section import WheelSection
from repositories.history_store import (
    ConcurrentSpinError,
    DuplicateCodeError,
    HistoryStore,
    HistoryStoreError,
)

logger = logging.getLogger(__name__)

# Keep these aligned with your database schema.
_SPINS_TABLE: str = "wheel_spins"
_SESSIONS_TABLE: str = "wheel_sessions"

_APPEND_RPC = "append_wheel_spin_atomic"
_REDEEM_RPC = "redeem_wheel_award_atomic"
_RESET_RPC = "reset_wheel_session_limits"

_REDEMPTION_ERRORS = {
    "NO_PRIZE": "no_prize",
    "ALREADY_REDEEMED": "already_redeemed",
    "EXPIRED": "expired",
}


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _quote(value: str) -> str:
    """Quote a value for a PostgREST `or` filter (commas and parentheses are reserved)."""

    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _row_to_award(row: Mapping[str, Any]) -> AwardRecord:
    """Convert a Supabase row into an AwardRecord."""

    redeemed_at = row.get("redeemed_at_utc")
    return AwardRecord(
        award_id=UUID(str(row["award_id"])),
        session_id=str(row["session_id"]),
        section=WheelSection(str(row["section"])),
        discount_percentage=DiscountPercentage(float(Decimal(str(row["discount_percentage"])))),
        spin_angle=float(row["spin_angle"]),
        spin_duration_ms=int(row["spin_duration_ms"]),
        created_at=parse_utc_datetime(row["created_at_utc"]),
        expires_at=parse_utc_datetime(row["expires_at_utc"]),
        user_ip=row.get("user_ip"),
        user_id=row.get("user_id"),
        metadata=dict(row.get("metadata") or {}),
        is_redeemed=bool(row.get("is_redeemed", False)),
        redeemed_at=parse_utc_datetime(redeemed_at) if redeemed_at else None,
    )


def _award_to_row(award: AwardRecord) -> dict[str, Any]:
    return {
        "award_id": str(award.award_id),
        "session_id": award.session_id,
        "section": award.section.value,
        "discount_percentage": award.discount_percentage.value,
        "spin_angle": award.spin_angle,
        "spin_duration_ms": award.spin_duration_ms,
        "created_at_utc": _to_iso_utc(award.created_at, name="created_at"),
        "expires_at_utc": _to_iso_utc(award.expires_at, name="expires_at"),
        "user_ip": award.user_ip,
        "user_id": award.user_id,
        "metadata": dict(award.metadata),
        "discount_code": award.discount_code,
        "is_redeemed": award.is_redeemed,
        "redeemed_at_utc": (
            _to_iso_utc(award.redeemed_at, name="redeemed_at") if award.redeemed_at else None
        ),
        "counts_toward_limits": True,
    }


def _rows(response: Any, action: str) -> List[Mapping[str, Any]]:
    error = getattr(response, "error", None)
    if error:
        raise HistoryStoreError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


class SupabaseHistoryStore(HistoryStore):
    def __init__(self, client: Any):
        self._client = client

    def _execute(self, query: Any, action: str) -> List[Mapping[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            # Transport failures (timeouts, connection resets) must not read as "no rows".
            raise HistoryStoreError(f"Failed to {action}: {e}") from e
        return _rows(response, action)

    def _call_rpc(self, name: str, params: Mapping[str, Any]) -> Mapping[str, Any]:
        """
        Invoke a PostgreSQL function and return its JSON result.

        supabase-py raises APIError when the function returns a JSON object,
        for both success and error payloads; the payload is recovered from
        the exception.
        """

        try:
            response = self._client.rpc(name, dict(params)).execute()
        except APIError as e:
            try:
                payload = e.json() if callable(getattr(e, "json", None)) else {}
            except ValueError:
                payload = {}
            if isinstance(payload, Mapping) and "success" in payload:
                return payload
            raise HistoryStoreError(f"RPC {name} failed: {e}") from e
        except Exception as e:
            raise HistoryStoreError(f"RPC {name} failed: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise HistoryStoreError(f"RPC {name} failed: {error}")

        data = getattr(response, "data", None)
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, Mapping):
            raise HistoryStoreError(f"RPC {name} returned an unexpected payload: {data!r}")
        return data

    def _session_version(self, session_id: str) -> int:
        rows = self._execute(
            self._client.table(_SESSIONS_TABLE).select("version").eq("session_id", session_id).limit(1),
            "load session version",
        )
        if not rows:
            return 0
        return int(rows[0]["version"])

    def load(
        self,
        session_id: str,
        *,
        user_id: Optional[str] = None,
        user_ip: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> SpinHistory:
        version = self._session_version(session_id)

        session_rows = self._execute(
            self._client.table(_SPINS_TABLE)
            .select("*")
            .eq("session_id", session_id)
            .eq("counts_toward_limits", True)
            .order("created_at_utc"),
            "load session spins",
        )

        identity = [f"session_id.eq.{_quote(session_id)}"]
        if user_id is not None:
            identity.append(f"user_id.eq.{_quote(user_id)}")
        if user_ip is not None:
            identity.append(f"user_ip.eq.{_quote(user_ip)}")

        daily_query = (
            self._client.table(_SPINS_TABLE)
            .select("*")
            .eq("counts_toward_limits", True)
            .or_(",".join(identity))
        )
        if since is not None:
            daily_query = daily_query.gte("created_at_utc", _to_iso_utc(since, name="since"))
        daily_rows = self._execute(daily_query.order("created_at_utc"), "load daily spins")

        return SpinHistory(
            session_id=session_id,
            session_spins=tuple(_row_to_award(row) for row in session_rows),
            daily_spins=tuple(_row_to_award(row) for row in daily_rows),
            version=version,
        )

    def append(self, session_id: str, record: AwardRecord, expected_version: int) -> None:
        if record.session_id != session_id:
            raise ValueError("record.session_id does not match session_id")

        result = self._call_rpc(
            _APPEND_RPC,
            {
                "p_session_id": session_id,
                "p_expected_version": expected_version,
                "p_award": _award_to_row(record),
            },
        )

        if result.get("success"):
            logger.debug(
                "Award appended",
                extra={"award_id": str(record.award_id), "session_id": session_id, "version": result.get("version")},
            )
            return

        if result.get("error") == "VERSION_CONFLICT":
            raise ConcurrentSpinError(session_id, expected_version, int(result.get("actual_version", -1)))

        if result.get("error") == "DUPLICATE_CODE":
            raise DuplicateCodeError(record.discount_code or "")

        raise HistoryStoreError(f"Failed to append spin: {result.get('message') or result.get('error')}")

    def find_by_code(self, code: str) -> Optional[AwardRecord]:
        rows = self._execute(
            self._client.table(_SPINS_TABLE).select("*").eq("discount_code", normalize_code(code)).limit(1),
            "find award by code",
        )
        if not rows:
            return None
        return _row_to_award(rows[0])

    def mark_redeemed(self, code: str, redeemed_at: datetime) -> AwardRecord:
        result = self._call_rpc(
            _REDEEM_RPC,
            {
                "p_discount_code": normalize_code(code),
                "p_redeemed_at": _to_iso_utc(redeemed_at, name="redeemed_at"),
            },
        )

        if result.get("success"):
            return _row_to_award(result["award"])

        error_code = result.get("error")
        message = result.get("message") or str(error_code)
        if error_code == "NOT_FOUND":
            raise LookupError(f"No award found for code {code!r}")
        if error_code in _REDEMPTION_ERRORS:
            raise RedemptionNotAllowed(_REDEMPTION_ERRORS[error_code], message)
        raise HistoryStoreError(f"Failed to redeem award: {message}")

    def list_all(self) -> List[AwardRecord]:
        rows = self._execute(
            self._client.table(_SPINS_TABLE).select("*").order("created_at_utc"),
            "list awards",
        )
        return [_row_to_award(row) for row in rows]

    def reset_session_limits(self, session_id: str) -> int:
        result = self._call_rpc(_RESET_RPC, {"p_session_id": session_id})
        if not result.get("success"):
            raise HistoryStoreError(f"Failed to reset limits: {result.get('message') or result.get('error')}")
        return int(result.get("excluded", 0))


__all__ = ["SupabaseHistoryStore"]
