"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It pins APP_ENV so settings never pick up a developer's .env file, and
provides a controllable clock plus a stub upstream client so cache and
rate-limit behavior can be tested without sleeping or touching the network.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

from typing import Any, Mapping

import pytest

from f1_mcp.adapters.upstream.base import AbstractUpstreamClient
from f1_mcp.core.config import AppSettings, CacheSettings, Settings


class FakeClock:
    """Manually advanced time source (UNIX seconds)."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubUpstream(AbstractUpstreamClient):
    """Upstream client returning canned payloads and recording every call.

    ``enqueue`` queues outcomes per URL (payloads or exceptions to raise);
    once a URL's queue is empty, ``default`` is returned.
    """

    def __init__(self, default: Any = None) -> None:
        self.default = [] if default is None else default
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False
        self._queued: dict[str, list[Any]] = {}

    def enqueue(self, url: str, *outcomes: Any) -> None:
        self._queued.setdefault(url, []).extend(outcomes)

    def calls_to(self, url: str) -> int:
        return sum(1 for called, _ in self.calls if called == url)

    async def fetch_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        self.calls.append((url, dict(params or {})))
        queued = self._queued.get(url)
        outcome = queued.pop(0) if queued else self.default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_upstream() -> StubUpstream:
    return StubUpstream()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with a small rate limit so tests can exhaust it quickly."""
    return Settings(
        app=AppSettings(rate_limit_requests=3, rate_limit_window_ms=60_000),
        cache=CacheSettings(live_ttl_seconds=10, static_ttl_seconds=300),
    )
