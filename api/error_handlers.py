"""
Exception handlers.

Every failure reaches the client as the structured error body
`{"success": false, "error": {...}}`; stack traces stay in the logs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse
from services.errors import WheelServiceError

logger = logging.getLogger(__name__)


def _error_response(status_code: int, detail: ErrorDetail) -> JSONResponse:
    headers: Optional[Dict[str, str]] = None
    if detail.retry_after is not None:
        headers = {"Retry-After": str(detail.retry_after)}

    body = ErrorResponse(error=detail).model_dump(mode="json", by_alias=True)
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def _field_name(loc: Any) -> str:
    # ("body", "sessionId") -> "sessionId"
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


async def handle_service_error(request: Request, exc: WheelServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_type": exc.error_type, "code": exc.code},
        )

    return _error_response(
        exc.status_code,
        ErrorDetail(
            type=exc.error_type,
            message=exc.message,
            code=exc.code,
            retryable=exc.retryable,
            retry_after=exc.retry_after_seconds,
            details=exc.details(),
        ),
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors: List[Dict[str, str]] = [
        {
            "field": _field_name(error.get("loc", ())),
            "message": str(error.get("msg", "Invalid value")),
            "code": str(error.get("type", "invalid")).upper(),
        }
        for error in exc.errors()
    ]
    return _error_response(
        400,
        ErrorDetail(
            type="validation_error",
            message="Invalid request body",
            code="INVALID_REQUEST",
            details=errors,
        ),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error", extra={"path": request.url.path})
    return _error_response(
        500,
        ErrorDetail(
            type="internal_error",
            message="An unexpected error occurred. Please try again later.",
            code="INTERNAL_ERROR",
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WheelServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)


__all__ = ["register_exception_handlers"]
