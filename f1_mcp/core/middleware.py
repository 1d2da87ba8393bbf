"""HTTP middleware for request ID propagation and correlation.

The middleware:
- Accepts an incoming request-id header or generates a UUID
- Stores request_id in contextvars for access throughout the request lifecycle
- Injects request_id into response headers for client-side tracking
- Measures total request duration and includes it in response headers
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(build_request_id_middleware("X-Request-ID"))
"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from f1_mcp.core.logging import clear_request_id, set_request_id

CallNext = Callable[[Request], Awaitable[Response]]


def build_request_id_middleware(
    header_name: str = "X-Request-ID",
) -> Callable[[Request, CallNext], Awaitable[Response]]:
    """Create the request-id middleware bound to ``header_name``.

    Args:
        header_name: Header read from the request and echoed on the response.

    Returns:
        An ``http`` middleware coroutine for ``app.middleware("http")``.
    """

    async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(header_name) or str(uuid.uuid4())
        set_request_id(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            clear_request_id()

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[header_name] = request_id
        response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
        return response

    return request_id_middleware
