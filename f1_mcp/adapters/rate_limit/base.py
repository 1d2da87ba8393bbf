"""Rate limiter interfaces.

The protocol layer depends on this abstraction (not the concrete
implementation) so storage backends can be swapped with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of recording one request for a client.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        count: Requests recorded in the current window, this one included.
        remaining: Requests left in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window ends.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    count: int
    remaining: int
    reset_at: float
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for per-client rate limiters."""

    @abstractmethod
    def check_and_record(self, client_id: str) -> RateLimitResult:
        """Record one request for ``client_id`` and decide whether it may proceed.

        Must be called exactly once per inbound request, before any cache
        lookup or upstream fetch. Denial is a normal result, not an error.

        Args:
            client_id: Non-empty opaque client identifier.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> int:
        """Drop state for clients idle longer than one window.

        Returns:
            Number of client entries removed.
        """
        raise NotImplementedError
