"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: routes depend on a dependency function only.
- Swap-friendly: the limiter lives behind an abstract interface and is
  owned by the service container, not by this module.
- Runs before the request body is parsed, so a rejected request never
  reaches the cache or the upstream APIs.

Rate limiting strategy:
- Fixed window per client, keyed by the client-id header.
- A missing client id is a bad request, checked before any bookkeeping.
"""

from __future__ import annotations

import logging

from fastapi import Request

from f1_mcp.adapters.rate_limit.base import AbstractRateLimiter
from f1_mcp.core.container import ServiceContainer
from f1_mcp.core.errors import MissingClientIdAppError, RateLimitAppError
from f1_mcp.core.logging import hash_identifier

logger = logging.getLogger(__name__)


def get_container(request: Request) -> ServiceContainer:
    """Return the container owned by the running app."""
    return request.app.state.container


def check_client(limiter: AbstractRateLimiter, client_id: str | None, *, window_ms: int) -> None:
    """Validate the client identity and record one request for it.

    Args:
        limiter: Rate limiter to consult.
        client_id: Client identity from the request, possibly missing.
        window_ms: Window size, for log context.

    Raises:
        MissingClientIdAppError: If client_id is missing or blank. The
            limiter is not touched.
        RateLimitAppError: If the client exceeded its quota.
    """

    client_id = (client_id or "").strip()
    if not client_id:
        logger.warning("rate_limit.missing_client_id")
        raise MissingClientIdAppError(
            code="missing_client_id",
            message="Client ID is required",
            details={"hint": "Send a client identifier header with every request"},
        )

    result = limiter.check_and_record(client_id)
    client_hash = hash_identifier(client_id)
    if result.allowed:
        logger.info(
            "rate_limit.allowed",
            extra={
                "client_hash": client_hash,
                "limit": result.limit,
                "remaining": result.remaining,
                "window_ms": window_ms,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "client_hash": client_hash,
            "limit": result.limit,
            "count": result.count,
            "window_ms": window_ms,
            "retry_after_s": retry_after,
        },
    )
    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded",
        details={"limit": result.limit, "retry_after": retry_after},
    )


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing per-client rate limits.

    Reads the client id from the configured header and consumes one request
    from that client's window.

    Raises:
        MissingClientIdAppError: 400 when the client id header is absent.
        RateLimitAppError: 429 when the client exceeded the configured rate.
    """

    container = get_container(request)
    app_settings = container.settings.app
    if not app_settings.rate_limit_enabled:
        return

    check_client(
        container.rate_limiter,
        request.headers.get(app_settings.client_id_header),
        window_ms=app_settings.rate_limit_window_ms,
    )
