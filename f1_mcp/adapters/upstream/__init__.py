"""Upstream adapter layer - abstracts over the F1 REST data providers."""

from f1_mcp.adapters.upstream.base import AbstractUpstreamClient
from f1_mcp.adapters.upstream.httpx_client import HttpxUpstreamClient

__all__ = [
    "AbstractUpstreamClient",
    "HttpxUpstreamClient",
]
