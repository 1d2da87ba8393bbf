"""Unit tests for the in-memory TTL cache."""

import threading

import pytest

from f1_mcp.utils.ttl_cache import TTLCache, build_cache_key


class TestGetSet:
    """Basic store/lookup semantics."""

    def test_get_returns_value_before_expiry(self, clock) -> None:
        cache: TTLCache[dict] = TTLCache(default_ttl_seconds=5, clock=clock)
        cache.set("weather:latest", {"temp": 21})

        clock.advance(4)

        assert cache.get("weather:latest") == {"temp": 21}

    def test_get_returns_none_after_expiry(self, clock) -> None:
        """An entry written at t=1000 with ttl=5 is live at 1004 and absent at 1006."""
        cache: TTLCache[dict] = TTLCache(clock=clock)
        cache.set("weather:latest", {"temp": 21}, ttl_seconds=5)

        clock.now = 1004.0
        assert cache.get("weather:latest") == {"temp": 21}

        clock.now = 1006.0
        assert cache.get("weather:latest") is None
        assert len(cache) == 0

    def test_entry_is_live_exactly_at_expiry(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("k", "v", ttl_seconds=5)

        clock.advance(5)

        assert cache.get("k") == "v"

    def test_missing_key_returns_none(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)

        assert cache.get("nope") is None

    def test_set_overwrites_value_and_expiry(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("k", "first", ttl_seconds=5)

        clock.advance(4)
        cache.set("k", "second", ttl_seconds=5)
        clock.advance(4)

        assert cache.get("k") == "second"
        assert len(cache) == 1

    def test_default_ttl_applies_when_omitted(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(default_ttl_seconds=300, clock=clock)
        cache.set("k", "v")

        clock.advance(299)
        assert cache.get("k") == "v"

        clock.advance(2)
        assert cache.get("k") is None

    def test_falsy_values_are_cached(self, clock) -> None:
        cache: TTLCache[list] = TTLCache(clock=clock)
        cache.set("empty", [])

        assert cache.get("empty") == []
        assert cache.stats()["hits"] == 1

    def test_values_are_returned_by_reference(self, clock) -> None:
        cache: TTLCache[dict] = TTLCache(clock=clock)
        payload = {"laps": [1, 2]}
        cache.set("k", payload)

        assert cache.get("k") is payload


class TestKeyPrefix:
    """Keys are namespaced before they reach the store."""

    def test_prefixes_isolate_logical_caches(self, clock) -> None:
        live: TTLCache[str] = TTLCache(key_prefix="live:", clock=clock)
        static: TTLCache[str] = TTLCache(key_prefix="static:", clock=clock)

        live.set("k", "live-value")

        assert live.get("k") == "live-value"
        assert static.get("k") is None

    def test_configure_changes_prefix_for_new_lookups(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(key_prefix="a:", clock=clock)
        cache.set("k", "v")

        cache.configure(key_prefix="b:")

        assert cache.get("k") is None
        cache.configure(key_prefix="a:")
        assert cache.get("k") == "v"

    def test_configure_rejects_non_positive_ttl(self) -> None:
        cache: TTLCache[str] = TTLCache()

        with pytest.raises(ValueError):
            cache.configure(default_ttl_seconds=0)

    def test_constructor_rejects_non_positive_ttl(self) -> None:
        with pytest.raises(ValueError):
            TTLCache(default_ttl_seconds=-1)


class TestEviction:
    """Lazy eviction on lookup and bulk sweeps."""

    def test_sweep_removes_expired_without_get(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("short", "v", ttl_seconds=5)
        cache.set("long", "v", ttl_seconds=300)

        clock.advance(10)
        removed = cache.sweep()

        assert removed == 1
        assert len(cache) == 1
        assert cache.get("long") == "v"

    def test_sweep_is_idempotent(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("k", "v", ttl_seconds=1)
        clock.advance(2)

        assert cache.sweep() == 1
        assert cache.sweep() == 0

    def test_expired_lookup_counts_as_eviction_and_miss(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("k", "v", ttl_seconds=1)
        clock.advance(2)

        cache.get("k")

        stats = cache.stats()
        assert stats["evictions"] == 1
        assert stats["misses"] == 1
        assert stats["hits"] == 0

    def test_delete_reports_presence(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("k", "v")

        assert cache.delete("k") is True
        assert cache.delete("k") is False
        assert cache.get("k") is None

    def test_clear_removes_entries_and_resets_counters(self, clock) -> None:
        cache: TTLCache[str] = TTLCache(clock=clock)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.get("a")
        cache.get("missing")

        cache.clear()

        assert len(cache) == 0
        stats = cache.stats()
        assert stats["entries"] == 0
        assert stats["hits"] == 0
        assert stats["misses"] == 0


def test_stats_do_not_expose_values(clock) -> None:
    cache: TTLCache[str] = TTLCache(default_ttl_seconds=60, key_prefix="mcp:", clock=clock)
    cache.set("secret", "value")

    stats = cache.stats()

    assert stats["entries"] == 1
    assert stats["key_prefix"] == "mcp:"
    assert stats["default_ttl_seconds"] == 60
    assert "value" not in stats.values()


def test_concurrent_writers_and_readers() -> None:
    cache: TTLCache[int] = TTLCache(default_ttl_seconds=60)
    errors: list[Exception] = []

    def worker(offset: int) -> None:
        try:
            for i in range(200):
                key = f"k{(i + offset) % 50}"
                cache.set(key, i)
                cache.get(key)
                if i % 25 == 0:
                    cache.sweep()
        except Exception as exc:  # pragma: no cover - only on failure
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert len(cache) == 50


class TestBuildCacheKey:
    def test_without_params_returns_url(self) -> None:
        assert build_cache_key("https://api.openf1.org/v1/live_timing") == (
            "https://api.openf1.org/v1/live_timing"
        )

    def test_param_order_does_not_matter(self) -> None:
        url = "https://api.openf1.org/v1/pit"

        first = build_cache_key(url, {"session_key": "9161", "driver_number": "1"})
        second = build_cache_key(url, {"driver_number": "1", "session_key": "9161"})

        assert first == second
        assert first == f"{url}?driver_number=1&session_key=9161"

    def test_none_params_are_dropped(self) -> None:
        url = "https://api.openf1.org/v1/weather"

        assert build_cache_key(url, {"session_key": None}) == url

    def test_appends_to_existing_query(self) -> None:
        url = "https://api.openf1.org/v1/car_data?speed>=315"

        assert build_cache_key(url, {"driver_number": "1"}) == f"{url}&driver_number=1"

    def test_distinct_params_give_distinct_keys(self) -> None:
        url = "https://api.openf1.org/v1/weather"

        assert build_cache_key(url, {"session_key": "1"}) != build_cache_key(
            url, {"session_key": "2"}
        )
