"""
Discounts API Endpoints.

Endpoints for checking and redeeming wheel discount codes.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_redemption_service
from api.models import CodeValidationResponse, DiscountCodeRequest, RedemptionResponse
from services.redemption_service import RedemptionService

router = APIRouter()


@router.post(
    "/discounts/validate",
    response_model=CodeValidationResponse,
    summary="Validate Discount Code",
    description="Check a code's format and embedded percentage without consulting issued awards."
)
def validate_discount_code(
    body: DiscountCodeRequest,
    service: RedemptionService = Depends(get_redemption_service),
):
    validation = service.validate(body.code)
    return CodeValidationResponse(
        code=validation.code,
        valid=validation.valid,
        reason=validation.reason.value,
        percentage=validation.percentage,
        message=validation.message,
    )


@router.post(
    "/discounts/redeem",
    response_model=RedemptionResponse,
    summary="Redeem Discount Code",
    description="Mark an issued, unexpired discount as used. A code can be redeemed once."
)
def redeem_discount_code(
    body: DiscountCodeRequest,
    service: RedemptionService = Depends(get_redemption_service),
):
    """
    Redeem a discount code.

    A refused redemption is still a 200 response with `redeemed: false` and
    one of the reasons: `invalid_format`, `invalid_percentage`, `not_found`,
    `no_prize`, `expired`, `already_redeemed`.
    """
    outcome = service.redeem(body.code)
    award = outcome.award
    return RedemptionResponse(
        code=outcome.code,
        redeemed=outcome.redeemed,
        reason=outcome.reason.value,
        message=outcome.message,
        discount_percentage=award.discount_percentage.value if award else None,
        expires_at=award.expires_at if award else None,
        redeemed_at=award.redeemed_at if award else None,
    )
