from __future__ import annotations

from f1_mcp.api.routes.health import router as health_router
from f1_mcp.api.routes.mcp import router as mcp_router

__all__ = ["health_router", "mcp_router"]
