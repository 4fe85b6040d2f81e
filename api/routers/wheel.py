"""
Wheel API Endpoints.

Endpoints for spinning the discount wheel and reading its state.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_clock, get_spin_service
from api.models import (
    HistorySpinItem,
    OutcomeResponse,
    ResetLimitsRequest,
    ResetLimitsResponse,
    SpinHistoryResponse,
    SpinRequestBody,
    SpinResponse,
    WheelConfigResponse,
    WheelStatsResponse,
)
from domain.time import parse_utc_datetime
from domain.wheel_section import get_outcome, get_result_copy
from services.clock import Clock
from services.spin_service import SpinRequest, SpinResult, SpinService

router = APIRouter()


def _to_spin_response(result: SpinResult) -> SpinResponse:
    award = result.award
    outcome = get_outcome(award.section)
    copy = get_result_copy(award.section)
    winning = award.is_winning()

    return SpinResponse(
        id=award.award_id,
        session_id=award.session_id,
        section=award.section.value,
        label=outcome.label if outcome else award.section.value,
        discount_percentage=award.discount_percentage.value,
        spin_angle=award.spin_angle,
        spin_duration=award.spin_duration_ms,
        timestamp=award.created_at,
        is_winning=winning,
        result_title=copy.title,
        result_message=award.result_message(),
        result_action=copy.action,
        discount_code=award.discount_code,
        expires_at=award.expires_at if winning else None,
        next_spin_allowed_at=result.next_spin_allowed_at,
        can_spin_again=result.can_spin_again,
        spins_remaining_today=result.spins_remaining_today,
    )


@router.post(
    "/wheel/spin",
    response_model=SpinResponse,
    summary="Spin the Wheel",
    description="Draw a weighted outcome for the caller, subject to cooldown, daily and session limits."
)
def spin_wheel(
    body: SpinRequestBody,
    request: Request,
    service: SpinService = Depends(get_spin_service),
):
    """
    Spin the discount wheel.

    **Limits (checked in this order):**
    1. Cooldown between spins (default 5 minutes)
    2. Daily cap (default 10, UTC day)
    3. Session cap (default 3)

    A denied spin returns 429 with the reason, the remaining cooldown and a
    `Retry-After` header when a reset time is known.

    **Example request:**
    ```json
    {
      "sessionId": "sess_8f14e45fceea167a",
      "userIp": "203.0.113.7"
    }
    ```
    """
    # The connection address is not a caller identity.
    result = service.spin(
        SpinRequest(
            session_id=body.session_id,
            user_id=body.user_id,
            user_ip=body.user_ip,
            user_agent=body.user_agent or request.headers.get("user-agent"),
            metadata=body.metadata or {},
        )
    )
    return _to_spin_response(result)


@router.get(
    "/wheel/config",
    response_model=WheelConfigResponse,
    summary="Wheel Configuration",
    description="Sections, probabilities, colors and spin limits for rendering the wheel."
)
def get_wheel_config(service: SpinService = Depends(get_spin_service)):
    config = service.get_wheel_config()
    return WheelConfigResponse(
        is_enabled=config.enabled,
        max_spins_per_session=config.limits.max_spins_per_session,
        max_spins_per_day=config.limits.max_spins_per_day,
        cooldown_between_spins=config.limits.cooldown_ms,
        award_ttl_hours=config.award_ttl_hours,
        min_discount=config.min_discount,
        max_discount=config.max_discount,
        sections=[
            OutcomeResponse(
                section=outcome.section.value,
                label=outcome.label,
                discount_percentage=outcome.discount_percentage,
                probability=outcome.probability,
                color=outcome.color,
                text_color=outcome.text_color,
            )
            for outcome in config.outcomes
        ],
    )


@router.get(
    "/wheel/history/{session_id}",
    response_model=SpinHistoryResponse,
    summary="Spin History",
    description="A caller's spins and whether they may spin now."
)
def get_spin_history(
    session_id: str,
    user_id: Optional[str] = Query(None, alias="userId", description="Include today's spins for this user when identity matching is enabled"),
    user_ip: Optional[str] = Query(None, alias="userIp", description="Include today's spins from this IPv4 address when identity matching is enabled"),
    service: SpinService = Depends(get_spin_service),
    clock: Clock = Depends(get_clock),
):
    view = service.get_history(session_id, user_id=user_id, user_ip=user_ip)
    now = clock.now()

    return SpinHistoryResponse(
        session_id=view.session_id,
        spins=[
            HistorySpinItem(
                id=award.award_id,
                section=award.section.value,
                discount_percentage=award.discount_percentage.value,
                timestamp=award.created_at,
                is_winning=award.is_winning(),
                is_redeemed=award.is_redeemed,
                discount_code=award.discount_code,
                expires_at=award.expires_at if award.is_winning() and not award.is_expired(now) else None,
            )
            for award in view.spins
        ],
        total_spins=view.total_spins,
        total_wins=view.total_wins,
        total_discount_earned=view.total_discount_earned,
        can_spin=view.can_spin,
        next_spin_allowed_at=view.next_spin_allowed_at,
        spins_remaining_today=view.spins_remaining_today,
    )


@router.get(
    "/wheel/stats",
    response_model=WheelStatsResponse,
    summary="Wheel Statistics",
    description="Totals, win rate, average discount and per-section counts, optionally within a time window."
)
def get_wheel_stats(
    since: Optional[datetime] = Query(None, alias="from", description="Only spins at or after this time (ISO-8601, UTC if no offset)"),
    until: Optional[datetime] = Query(None, alias="to", description="Only spins at or before this time (ISO-8601, UTC if no offset)"),
    service: SpinService = Depends(get_spin_service),
):
    stats = service.get_stats(
        since=parse_utc_datetime(since) if since is not None else None,
        until=parse_utc_datetime(until) if until is not None else None,
    )
    return WheelStatsResponse(
        total_spins=stats.total_spins,
        total_wins=stats.total_wins,
        win_rate=stats.win_rate,
        average_discount=stats.average_discount,
        section_counts={section.value: count for section, count in stats.section_counts.items()},
        unique_sessions=stats.unique_sessions,
        redeemed_count=stats.redeemed_count,
    )


@router.post(
    "/wheel/reset",
    response_model=ResetLimitsResponse,
    summary="Reset Spin Limits",
    description="Admin only: stop counting a session's spins toward its limits. Issued codes stay valid."
)
def reset_spin_limits(
    body: ResetLimitsRequest,
    service: SpinService = Depends(get_spin_service),
):
    excluded = service.reset_limits(body.session_id, body.admin_key)
    return ResetLimitsResponse(
        success=True,
        message="Spin limits reset successfully",
        excluded_spins=excluded,
    )
