"""Rate limiting adapters.

This package provides a small abstraction layer so the server can start with
an in-memory limiter and later migrate to a shared store without changing
the protocol layer.
"""

from f1_mcp.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from f1_mcp.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = ["AbstractRateLimiter", "InMemoryFixedWindowRateLimiter", "RateLimitResult"]
