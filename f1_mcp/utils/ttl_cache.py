"""In-memory TTL cache used to avoid repeated upstream calls.

Each entry carries its own absolute expiry, so checking freshness is one
comparison and a full sweep is a single pass over the table. Expected
population is small (one entry per distinct upstream query shape in use),
which keeps the O(n) sweep cheap.

Values are returned by reference. Callers must treat them as read-only or
copy them before mutating.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Mapping, TypeVar
from urllib.parse import urlencode

from f1_mcp.utils.reaper import PeriodicSweeper

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True)
class CacheItem(Generic[V]):
    """Container for a cached value with its absolute expiry (epoch seconds)."""

    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """Thread-safe, in-memory cache with a per-entry TTL.

    Every logical key is namespaced with ``key_prefix`` before it reaches the
    store, so several logical caches can share one prefix scheme safely.

    Attributes:
        default_ttl_seconds: TTL used when ``set`` is called without one.
        key_prefix: Namespace prepended to every logical key.
    """

    def __init__(
        self,
        *,
        default_ttl_seconds: float = 300,
        key_prefix: str = "mcp:",
        sweep_interval_seconds: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl_seconds: TTL applied when set() omits one.
            key_prefix: Namespace for storage keys ("" for none).
            sweep_interval_seconds: Period of the background reaper.
            clock: Time source returning UNIX time in seconds.

        Raises:
            ValueError: If default_ttl_seconds is not positive.
        """
        self._store: dict[str, CacheItem[V]] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self.default_ttl_seconds = default_ttl_seconds
        self.key_prefix = key_prefix
        self.configure(default_ttl_seconds=default_ttl_seconds, key_prefix=key_prefix)
        self._reaper = PeriodicSweeper(
            "cache", self.sweep, interval_seconds=sweep_interval_seconds
        )

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TTLCache(default_ttl_seconds={self.default_ttl_seconds}, "
            f"key_prefix={self.key_prefix!r}, size={len(self._store)}, "
            f"hits={self._hits}, misses={self._misses}, evictions={self._evictions})"
        )

    def __len__(self) -> int:
        """Physical entry count, including expired entries not yet swept."""
        with self._lock:
            return len(self._store)

    def configure(
        self,
        *,
        default_ttl_seconds: float | None = None,
        key_prefix: str | None = None,
    ) -> None:
        """Change the default TTL and/or key prefix.

        Existing entries keep their expiry. Changing the prefix hides entries
        stored under the previous prefix until they expire or are swept.

        Raises:
            ValueError: If default_ttl_seconds is not positive.
        """

        if default_ttl_seconds is not None:
            if default_ttl_seconds <= 0:
                raise ValueError("default_ttl_seconds must be > 0")
            self.default_ttl_seconds = default_ttl_seconds
        if key_prefix is not None:
            self.key_prefix = key_prefix

    def get(self, key: str) -> V | None:
        """Retrieve a cached value if it exists and is not expired.

        An expired entry found here is removed in the same locked step.

        Args:
            key: Logical cache key (without prefix).

        Returns:
            Cached value or None if not found/expired.
        """

        storage_key = self._storage_key(key)
        with self._lock:
            item = self._store.get(storage_key)
            if item is None:
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={"cache_key": storage_key, "reason": "not_found"},
                )
                return None

            if self._is_expired(item, self._clock()):
                del self._store[storage_key]
                self._evictions += 1
                self._misses += 1
                logger.debug(
                    "cache.miss",
                    extra={"cache_key": storage_key, "reason": "expired"},
                )
                return None

            self._hits += 1
            logger.debug("cache.hit", extra={"cache_key": storage_key})
            return item.value

    def set(self, key: str, value: V, ttl_seconds: float | None = None) -> None:
        """Store a value, replacing any previous entry for the key.

        Args:
            key: Logical cache key (without prefix).
            value: Value to store.
            ttl_seconds: Lifetime in seconds; defaults to default_ttl_seconds.
        """

        ttl = self.default_ttl_seconds if ttl_seconds is None else ttl_seconds
        storage_key = self._storage_key(key)
        with self._lock:
            self._store[storage_key] = CacheItem(value=value, expires_at=self._clock() + ttl)
            logger.debug(
                "cache.set",
                extra={"cache_key": storage_key, "size": len(self._store), "ttl_s": ttl},
            )

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns True when an entry was present."""

        with self._lock:
            return self._store.pop(self._storage_key(key), None) is not None

    def clear(self) -> None:
        """Remove all cached entries and reset counters."""

        with self._lock:
            removed = len(self._store)
            self._store.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0
        logger.info("cache.cleared", extra={"removed": removed})

    def sweep(self) -> int:
        """Physically remove every expired entry.

        Returns:
            Number of entries removed.
        """

        with self._lock:
            now = self._clock()
            expired = [k for k, item in self._store.items() if self._is_expired(item, now)]
            for storage_key in expired:
                del self._store[storage_key]
            self._evictions += len(expired)

        if expired:
            logger.debug("cache.sweep", extra={"removed": len(expired)})
        return len(expired)

    def stats(self) -> dict[str, int | float | str]:
        """Return lightweight cache metrics without exposing values."""

        with self._lock:
            return {
                "default_ttl_seconds": self.default_ttl_seconds,
                "key_prefix": self.key_prefix,
                "entries": len(self._store),
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    @property
    def reaper(self) -> PeriodicSweeper:
        return self._reaper

    def start_reaper(self) -> None:
        """Start periodic sweeping on the running event loop."""
        self._reaper.start()

    async def stop_reaper(self) -> None:
        """Stop periodic sweeping."""
        await self._reaper.stop()

    def _storage_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    @staticmethod
    def _is_expired(item: CacheItem[Any], now: float) -> bool:
        return now > item.expires_at


def build_cache_key(url: str, params: Mapping[str, Any] | None = None) -> str:
    """Build a stable cache key from an upstream URL and its query params.

    Params are sorted and None values dropped, so two calls describing the
    same query share one key regardless of argument order.

    Examples:
        >>> build_cache_key("https://api.openf1.org/v1/pit", {"session_key": 9161})
        'https://api.openf1.org/v1/pit?session_key=9161'
        >>> build_cache_key("https://api.openf1.org/v1/live_timing")
        'https://api.openf1.org/v1/live_timing'
    """

    if not params:
        return url

    pairs = sorted((k, str(v)) for k, v in params.items() if v is not None)
    if not pairs:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(pairs)}"
