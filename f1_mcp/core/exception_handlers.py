"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept errors raised
outside the JSON-RPC envelope (client identity, rate limiting, unexpected
failures) and return consistent JSON responses with proper HTTP status codes.

Design:
- AppError subclasses → appropriate HTTP status (400, 429, 500)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from f1_mcp.core.errors import (
    AppError,
    MalformedPayloadAppError,
    RateLimitAppError,
    UpstreamAppError,
)
from f1_mcp.core.logging import get_request_id

logger = logging.getLogger(__name__)


def status_code_for(exc: AppError) -> int:
    """HTTP status for a domain error.

    - RateLimitAppError → 429 Too Many Requests (retry after the window)
    - UpstreamAppError / MalformedPayloadAppError → 500 (server fault)
    - anything else, including MissingClientIdAppError → 400 (client fault)
    """
    if isinstance(exc, RateLimitAppError):
        return 429
    if isinstance(exc, (UpstreamAppError, MalformedPayloadAppError)):
        return 500
    return 400


def _error_response(
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    error: dict[str, Any] = {"code": code, "message": message, "request_id": get_request_id()}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error}, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error as ``{"error": {code, message, request_id, details?}}``.

    Rate-limit rejections also carry a ``Retry-After`` header in whole
    seconds.
    """
    status_code = status_code_for(exc)

    logger.log(
        logging.ERROR if status_code >= 500 else logging.WARNING,
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "request_path": request.url.path,
            "has_details": bool(exc.details),
        },
    )

    headers = None
    if isinstance(exc, RateLimitAppError) and exc.details and "retry_after" in exc.details:
        headers = {"Retry-After": str(int(exc.details["retry_after"]))}

    return _error_response(status_code, exc.code, exc.message, exc.details, headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net: log the failure, answer 500 without leaking internals."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return _error_response(
        500,
        "internal_server_error",
        "An unexpected error occurred. Please try again later.",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain handler, then the catch-all fallback."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
