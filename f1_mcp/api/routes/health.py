from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Not rate limited. Reports server identity plus the size of the
    in-memory stores so operators can see that the reapers keep up.

    Returns:
        dict: Status, server name/version, tool count, cache entries and
            tracked clients.
    """

    container = request.app.state.container
    return {
        "status": "ok",
        "server": container.settings.app.server_name,
        "version": container.settings.app.server_version,
        "tools_count": len(container.registry),
        "cache_entries": len(container.cache),
        "rate_limited_clients": len(container.rate_limiter),
    }
