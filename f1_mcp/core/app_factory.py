"""Application factory for the FastAPI app.

Centralizes app construction (container, lifespan, middleware, handlers,
routers) so tests can build isolated apps with their own settings and a
stub upstream client.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from f1_mcp.adapters.upstream.base import AbstractUpstreamClient
from f1_mcp.api.routes import health_router, mcp_router
from f1_mcp.core.config import Settings, settings as default_settings
from f1_mcp.core.container import ServiceContainer, build_container
from f1_mcp.core.exception_handlers import setup_exception_handlers
from f1_mcp.core.logging import configure_logging
from f1_mcp.core.middleware import build_request_id_middleware
from f1_mcp.core.openapi import apply_openapi_customizations


def create_app(
    settings: Settings | None = None,
    *,
    container: ServiceContainer | None = None,
    upstream: AbstractUpstreamClient | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        settings: Settings to use; defaults to the environment-derived ones.
        container: Prebuilt container (tests inject clocks this way).
        upstream: Upstream client used when building the container.
        configure_logs: Whether to (re)configure the root logger.

    Returns:
        Configured FastAPI app. Its lifespan starts and stops the reapers.
    """
    cfg = container.settings if container is not None else (settings or default_settings)

    # Logging first so subsequent init logs are formatted as desired
    if configure_logs:
        configure_logging(cfg.log, debug=cfg.app.debug)

    services = container or build_container(cfg, upstream=upstream)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await services.startup()
        try:
            yield
        finally:
            await services.shutdown()

    app = FastAPI(
        title="F1 MCP Server",
        description=(
            "Model Context Protocol server exposing Formula 1 live timing, "
            "telemetry and historical results as tools. Responses are cached "
            "in memory per query and requests are rate limited per client."
        ),
        version=cfg.app.server_version,
        lifespan=lifespan,
    )
    app.state.container = services

    # Middleware
    app.middleware("http")(build_request_id_middleware(cfg.log.request_id_header))

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(mcp_router)
    app.include_router(health_router)

    apply_openapi_customizations(app, client_id_header=cfg.app.client_id_header)

    return app
