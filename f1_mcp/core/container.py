"""Explicit construction and lifecycle of the server's stateful components.

``build_container`` is the single place where the cache, rate limiter,
upstream client, data service and tool registry are created. The app factory
owns the resulting container and drives its lifecycle: ``startup`` starts
both background reapers, ``shutdown`` stops them and closes the HTTP client.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from f1_mcp.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from f1_mcp.adapters.upstream.base import AbstractUpstreamClient
from f1_mcp.adapters.upstream.httpx_client import HttpxUpstreamClient
from f1_mcp.core.config import Settings
from f1_mcp.mcp.protocol import MCPProtocolHandler
from f1_mcp.mcp.tools import ToolRegistry, build_f1_tools
from f1_mcp.services.f1_data_service import F1DataService
from f1_mcp.utils.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Stateful components shared by every request in this process."""

    settings: Settings
    cache: TTLCache[Any]
    rate_limiter: InMemoryFixedWindowRateLimiter
    upstream: AbstractUpstreamClient
    f1_service: F1DataService
    registry: ToolRegistry
    protocol: MCPProtocolHandler

    async def startup(self) -> None:
        self.cache.start_reaper()
        self.rate_limiter.start_reaper()
        logger.info(
            "container.started",
            extra={"tools": len(self.registry), "rate_limit": self.rate_limiter.limit},
        )

    async def shutdown(self) -> None:
        await self.cache.stop_reaper()
        await self.rate_limiter.stop_reaper()
        await self.upstream.close()
        logger.info("container.stopped")


def build_container(
    settings: Settings,
    *,
    upstream: AbstractUpstreamClient | None = None,
    clock: Callable[[], float] = time.time,
) -> ServiceContainer:
    """Build every component from settings.

    Args:
        settings: Resolved application settings.
        upstream: Optional upstream client (tests pass a stub).
        clock: Time source shared by the cache and the rate limiter.

    Returns:
        ServiceContainer ready for ``startup``.
    """

    cache: TTLCache[Any] = TTLCache(
        default_ttl_seconds=settings.cache.default_ttl_seconds,
        key_prefix=settings.cache.key_prefix,
        sweep_interval_seconds=settings.cache.sweep_interval_ms / 1000,
        clock=clock,
    )
    rate_limiter = InMemoryFixedWindowRateLimiter(
        limit=settings.app.rate_limit_requests,
        window_ms=settings.app.rate_limit_window_ms,
        sweep_interval_ms=settings.app.rate_limit_sweep_interval_ms,
        clock=clock,
    )
    upstream = upstream or HttpxUpstreamClient(
        timeout_seconds=settings.upstream.timeout_seconds,
    )
    f1_service = F1DataService(
        cache=cache,
        upstream=upstream,
        openf1_base_url=settings.upstream.openf1_base_url,
        ergast_base_url=settings.upstream.ergast_base_url,
        live_ttl_seconds=settings.cache.live_ttl_seconds,
        static_ttl_seconds=settings.cache.static_ttl_seconds,
        ttl_overrides=settings.cache.ttl_overrides,
    )
    registry = build_f1_tools(f1_service)
    protocol = MCPProtocolHandler(
        registry=registry,
        server_name=settings.app.server_name,
        server_version=settings.app.server_version,
        instructions=(
            "Formula 1 data: live timing and telemetry from OpenF1, "
            "historical results and standings from an Ergast-compatible API."
        ),
    )
    return ServiceContainer(
        settings=settings,
        cache=cache,
        rate_limiter=rate_limiter,
        upstream=upstream,
        f1_service=f1_service,
        registry=registry,
        protocol=protocol,
    )
