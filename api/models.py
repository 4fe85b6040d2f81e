"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model: camelCase JSON, snake_case attributes (both accepted on input)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ============================================================================
# Wheel Models
# ============================================================================

class SpinRequestBody(CamelModel):
    """Request to spin the wheel."""
    session_id: str = Field(..., description="Client session identifier (max 100 characters)")
    user_id: Optional[str] = Field(None, description="Known user identifier, if any")
    user_ip: Optional[str] = Field(None, description="Caller IPv4 address, stored with the award")
    user_agent: Optional[str] = Field(None, description="Caller user agent (defaults to the User-Agent header)")
    metadata: Optional[Dict[str, Any]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "sessionId": "sess_8f14e45fceea167a",
                "userIp": "203.0.113.7",
                "metadata": {"source": "landing"}
            }
        }


class SpinResponse(CamelModel):
    """Award produced by a spin plus next-spin information."""
    id: UUID
    session_id: str
    section: str
    label: str
    discount_percentage: float
    spin_angle: float
    spin_duration: int  # milliseconds
    timestamp: datetime
    is_winning: bool
    result_title: str
    result_message: str
    result_action: str
    discount_code: Optional[str] = None
    expires_at: Optional[datetime] = None
    next_spin_allowed_at: Optional[datetime] = None
    can_spin_again: bool
    spins_remaining_today: int

    class Config:
        json_schema_extra = {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "sessionId": "sess_8f14e45fceea167a",
                "section": "DISCOUNT_15",
                "label": "15% OFF",
                "discountPercentage": 15,
                "spinAngle": 1523.4,
                "spinDuration": 4120,
                "timestamp": "2025-01-01T12:00:00Z",
                "isWinning": True,
                "resultTitle": "Great!",
                "resultMessage": "Excellent! You won a 15% discount on our services.",
                "resultAction": "Complete the quote form to claim your discount",
                "discountCode": "INTEL15123E4567M",
                "expiresAt": "2025-01-02T12:00:00Z",
                "nextSpinAllowedAt": "2025-01-01T12:05:00Z",
                "canSpinAgain": True,
                "spinsRemainingToday": 9
            }
        }


class OutcomeResponse(CamelModel):
    """One slot on the wheel, in wheel order."""
    section: str
    label: str
    discount_percentage: int
    probability: float
    color: str
    text_color: str


class WheelConfigResponse(CamelModel):
    """Current wheel configuration."""
    is_enabled: bool
    max_spins_per_session: int
    max_spins_per_day: int
    cooldown_between_spins: int  # milliseconds
    award_ttl_hours: float
    min_discount: int
    max_discount: int
    sections: List[OutcomeResponse]


class HistorySpinItem(CamelModel):
    """A past spin as shown in a caller's history."""
    id: UUID
    section: str
    discount_percentage: float
    timestamp: datetime
    is_winning: bool
    is_redeemed: bool
    discount_code: Optional[str] = None
    expires_at: Optional[datetime] = None


class SpinHistoryResponse(CamelModel):
    """A caller's spins and current eligibility."""
    session_id: str
    spins: List[HistorySpinItem]
    total_spins: int
    total_wins: int
    total_discount_earned: float
    can_spin: bool
    next_spin_allowed_at: Optional[datetime] = None
    spins_remaining_today: int


class WheelStatsResponse(CamelModel):
    """Aggregate wheel statistics."""
    total_spins: int
    total_wins: int
    win_rate: float
    average_discount: float
    section_counts: Dict[str, int]
    unique_sessions: int
    redeemed_count: int

    class Config:
        json_schema_extra = {
            "example": {
                "totalSpins": 120,
                "totalWins": 114,
                "winRate": 95.0,
                "averageDiscount": 13.9,
                "sectionCounts": {"DISCOUNT_5": 31, "TRY_AGAIN": 6},
                "uniqueSessions": 58,
                "redeemedCount": 12
            }
        }


class ResetLimitsRequest(CamelModel):
    """Admin request to stop counting a session's spins toward its limits."""
    session_id: str
    admin_key: str


class ResetLimitsResponse(CamelModel):
    success: bool
    message: str
    excluded_spins: int


# ============================================================================
# Discount Models
# ============================================================================

class DiscountCodeRequest(CamelModel):
    """A discount code submitted for validation or redemption."""
    code: str = Field(..., description="Discount code, e.g. INTEL15123E4567M")

    class Config:
        json_schema_extra = {
            "example": {
                "code": "INTEL15123E4567M"
            }
        }


class CodeValidationResponse(CamelModel):
    """Shape check of a discount code (does not consult issued awards)."""
    code: str
    valid: bool
    reason: str
    percentage: Optional[int] = None
    message: str


class RedemptionResponse(CamelModel):
    """Result of a redemption attempt."""
    code: str
    redeemed: bool
    reason: str
    message: str
    discount_percentage: Optional[float] = None
    expires_at: Optional[datetime] = None
    redeemed_at: Optional[datetime] = None


# ============================================================================
# Error Models
# ============================================================================

class ErrorDetail(CamelModel):
    type: str
    message: str
    code: str
    retryable: bool = False
    retry_after: Optional[int] = None  # seconds
    details: Optional[Any] = None


class ErrorResponse(CamelModel):
    """Standard error response."""
    success: bool = False
    error: ErrorDetail

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": {
                    "type": "rate_limit",
                    "message": "Please wait 4 minutes before spinning again",
                    "code": "RATE_LIMIT_EXCEEDED",
                    "retryable": True,
                    "retryAfter": 240,
                    "details": {
                        "reason": "cooldown",
                        "cooldownRemainingMs": 240000,
                        "nextSpinAllowedAt": "2025-01-01T12:05:00+00:00"
                    }
                }
            }
        }
