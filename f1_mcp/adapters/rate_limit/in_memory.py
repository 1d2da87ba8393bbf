"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows are per client and start at the client's first request, not on a
  wall-clock boundary.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

from f1_mcp.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from f1_mcp.utils.reaper import PeriodicSweeper


@dataclass
class RateLimitEntry:
    """Counter state for one client."""

    count: int
    window_start: float
    last_seen: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per client.

    A client's window opens with its first request. Once more than
    ``window_ms`` has elapsed since the window opened, the next request
    starts a fresh window with a count of 1, whatever state the client was in.

    At the boundary the limiter increments first and then checks: the
    request that pushes the count past ``limit`` is denied, and the stored
    count stays at ``limit + 1`` until the window rolls over.

    Important:
        This limiter is per-process only. If the server runs with multiple
        workers, each worker enforces its own independent limits.
    """

    def __init__(
        self,
        *,
        limit: int = 60,
        window_ms: int = 60_000,
        sweep_interval_ms: int = 60_000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of allowed requests per window.
            window_ms: Size of the fixed window in milliseconds.
            sweep_interval_ms: Period of the background reaper in milliseconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_ms are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        self._limit = limit
        self._window_ms = window_ms
        self._window_seconds = window_ms / 1000
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, RateLimitEntry] = {}
        self._reaper = PeriodicSweeper(
            "rate_limit", self.cleanup, interval_seconds=sweep_interval_ms / 1000
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_ms(self) -> int:
        return self._window_ms

    @property
    def reaper(self) -> PeriodicSweeper:
        return self._reaper

    def _window_elapsed(self, entry: RateLimitEntry, now: float) -> bool:
        return now - entry.window_start > self._window_seconds

    def _build_result(self, entry: RateLimitEntry, now: float) -> RateLimitResult:
        reset_at = entry.window_start + self._window_seconds
        if entry.count <= self._limit:
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                count=entry.count,
                remaining=self._limit - entry.count,
                reset_at=reset_at,
                retry_after_seconds=None,
            )

        retry_after = max(0, int(math.ceil(reset_at - now)))
        return RateLimitResult(
            allowed=False,
            limit=self._limit,
            count=entry.count,
            remaining=0,
            reset_at=reset_at,
            retry_after_seconds=retry_after,
        )

    def check_and_record(self, client_id: str) -> RateLimitResult:
        """Record one request for the client and return the decision.

        Args:
            client_id: Opaque client identifier.

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If client_id is empty. Callers reject anonymous
                requests before reaching the limiter.
        """
        if not client_id:
            raise ValueError("client_id must be a non-empty string")

        now = self._clock()
        with self._lock:
            entry = self._entries.get(client_id)
            if entry is None:
                entry = RateLimitEntry(count=1, window_start=now, last_seen=now)
                self._entries[client_id] = entry
            elif self._window_elapsed(entry, now):
                entry.count = 1
                entry.window_start = now
                entry.last_seen = now
            else:
                entry.count = min(entry.count + 1, self._limit + 1)
                entry.last_seen = now

            return self._build_result(entry, now)

    def get_entry(self, client_id: str) -> RateLimitEntry | None:
        """Return a snapshot of the client's state, or None if untracked."""

        with self._lock:
            entry = self._entries.get(client_id)
            return replace(entry) if entry is not None else None

    def cleanup(self) -> int:
        """Drop clients whose last request is older than one window."""

        now = self._clock()
        with self._lock:
            idle = [
                client_id
                for client_id, entry in self._entries.items()
                if now - entry.last_seen > self._window_seconds
            ]
            for client_id in idle:
                del self._entries[client_id]
        return len(idle)

    def reset(self) -> None:
        """Forget every client."""

        with self._lock:
            self._entries.clear()

    def start_reaper(self) -> None:
        """Start periodic cleanup on the running event loop."""
        self._reaper.start()

    async def stop_reaper(self) -> None:
        """Stop periodic cleanup."""
        await self._reaper.stop()
