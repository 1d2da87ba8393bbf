"""F1 data service: upstream fetches memoized through the response cache.

Every operation builds an upstream query, then goes through
``_fetch_cached``:

1. Look the query up in the cache; a hit returns without side effects.
2. On a miss, await the upstream fetch. The cache is not touched while the
   request is in flight.
3. Only after a successful fetch is the raw payload stored, with a TTL
   chosen per operation (short for live data, long for near-static data).
4. A failed fetch is never cached and surfaces as ``UpstreamAppError``.

Concurrent misses on the same key each perform their own fetch and the last
write wins. There is no per-key request coalescing.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from f1_mcp.adapters.upstream.base import AbstractUpstreamClient
from f1_mcp.core.errors import MalformedPayloadAppError, UpstreamAppError
from f1_mcp.utils.ttl_cache import TTLCache, build_cache_key

logger = logging.getLogger(__name__)

LIVE = "live"
STATIC = "static"


def extract_mrdata(payload: Any, path: tuple[str, ...], *, operation: str) -> list[Any]:
    """Walk ``MRData`` -> ``path`` in an Ergast envelope and return the list found.

    Args:
        payload: Parsed Ergast JSON.
        path: Keys below ``MRData``, e.g. ("RaceTable", "Races").
        operation: Operation name for error context.

    Raises:
        MalformedPayloadAppError: If a key is missing or the leaf is not a list.
    """

    node = payload
    walked: list[str] = []
    for key in ("MRData", *path):
        walked.append(key)
        if not isinstance(node, Mapping) or key not in node:
            raise MalformedPayloadAppError(
                code="malformed_upstream_payload",
                message=f"Upstream payload for {operation} is missing '{'.'.join(walked)}'",
                details={"tool": operation, "field": ".".join(walked)},
            )
        node = node[key]

    if not isinstance(node, list):
        raise MalformedPayloadAppError(
            code="malformed_upstream_payload",
            message=f"Upstream payload for {operation} has a non-list '{'.'.join(walked)}'",
            details={"tool": operation, "field": ".".join(walked)},
        )
    return node


def _first(items: list[Any]) -> Any:
    return items[0] if items else None


class F1DataService:
    """Data operations over OpenF1 and an Ergast-compatible API."""

    def __init__(
        self,
        *,
        cache: TTLCache[Any],
        upstream: AbstractUpstreamClient,
        openf1_base_url: str = "https://api.openf1.org/v1",
        ergast_base_url: str = "https://api.jolpi.ca/ergast/f1",
        live_ttl_seconds: float = 10,
        static_ttl_seconds: float = 300,
        ttl_overrides: Mapping[str, float] | None = None,
    ) -> None:
        self._cache = cache
        self._upstream = upstream
        self._openf1_base_url = openf1_base_url.rstrip("/")
        self._ergast_base_url = ergast_base_url.rstrip("/")
        self._ttls = {LIVE: live_ttl_seconds, STATIC: static_ttl_seconds}
        self._ttl_overrides = dict(ttl_overrides or {})

    @property
    def cache(self) -> TTLCache[Any]:
        return self._cache

    def ttl_for(self, operation: str, kind: str) -> float:
        """TTL in seconds for an operation: explicit override, else by data kind."""
        return self._ttl_overrides.get(operation, self._ttls[kind])

    async def _fetch_cached(
        self,
        url: str,
        params: Mapping[str, Any] | None,
        *,
        operation: str,
        kind: str,
        error_message: str,
    ) -> Any:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        cache_key = build_cache_key(url, query)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            data = await self._upstream.fetch_json(url, query)
        except UpstreamAppError as exc:
            logger.error(
                "upstream.fetch_failed",
                extra={"tool": operation, "cache_key": cache_key, "error_code": exc.code},
            )
            details = dict(exc.details or {})
            details["tool"] = operation
            raise UpstreamAppError(
                code=exc.code,
                message=error_message,
                details=details,  # type: ignore[arg-type]
            ) from exc

        self._cache.set(cache_key, data, self.ttl_for(operation, kind))
        return data

    # ── OpenF1 ─────────────────────────────────────────────────

    async def get_live_timing_data(self) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/live_timing",
            None,
            operation="getLiveTimingData",
            kind=LIVE,
            error_message="Failed to fetch live timing data",
        )

    async def get_current_session_status(self) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/session_status",
            None,
            operation="getCurrentSessionStatus",
            kind=LIVE,
            error_message="Failed to fetch session status",
        )

    async def get_driver_info(self, driver_id: str) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/drivers",
            {"driver_number": driver_id},
            operation="getDriverInfo",
            kind=STATIC,
            error_message="Failed to fetch driver info",
        )

    async def get_weather_data(self, session_key: str | None = None) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/weather",
            {"session_key": session_key},
            operation="getWeatherData",
            kind=LIVE,
            error_message="Failed to fetch weather data",
        )

    async def get_car_data(
        self,
        driver_number: str,
        session_key: str | None = None,
        filters: str | None = None,
    ) -> Any:
        """Car telemetry. ``filters`` is passed through verbatim as extra query text."""
        url = f"{self._openf1_base_url}/car_data"
        if filters:
            url = f"{url}?{filters.lstrip('?&')}"
        return await self._fetch_cached(
            url,
            {"driver_number": driver_number, "session_key": session_key},
            operation="getCarData",
            kind=LIVE,
            error_message="Failed to fetch car telemetry data",
        )

    async def get_pit_stop_data(
        self, session_key: str | None = None, driver_number: str | None = None
    ) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/pit",
            {"session_key": session_key, "driver_number": driver_number},
            operation="getPitStopData",
            kind=STATIC,
            error_message="Failed to fetch pit stop data",
        )

    async def get_team_radio(
        self, session_key: str | None = None, driver_number: str | None = None
    ) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/team_radio",
            {"session_key": session_key, "driver_number": driver_number},
            operation="getTeamRadio",
            kind=STATIC,
            error_message="Failed to fetch team radio data",
        )

    async def get_race_control_messages(self, session_key: str | None = None) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/race_control",
            {"session_key": session_key},
            operation="getRaceControlMessages",
            kind=LIVE,
            error_message="Failed to fetch race control messages",
        )

    async def get_historical_sessions(
        self,
        *,
        year: int | None = None,
        circuit_short_name: str | None = None,
        session_name: str | None = None,
        country_name: str | None = None,
        location: str | None = None,
    ) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/sessions",
            {
                "year": year,
                "circuit_short_name": circuit_short_name,
                "session_name": session_name,
                "country_name": country_name,
                "location": location,
            },
            operation="getHistoricalSessions",
            kind=STATIC,
            error_message="Failed to fetch historical sessions",
        )

    async def get_tyre_strategy(self, session_key: str, driver_number: str | None = None) -> Any:
        return await self._fetch_cached(
            f"{self._openf1_base_url}/stints",
            {"session_key": session_key, "driver_number": driver_number},
            operation="getTyreStrategy",
            kind=STATIC,
            error_message="Failed to fetch tyre strategy data",
        )

    # ── Ergast ─────────────────────────────────────────────────

    async def _fetch_ergast(
        self,
        path: str,
        *,
        operation: str,
        error_message: str,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        return await self._fetch_cached(
            f"{self._ergast_base_url}/{path}",
            params,
            operation=operation,
            kind=STATIC,
            error_message=error_message,
        )

    async def get_historic_race_results(self, year: int, round: int) -> Any:
        data = await self._fetch_ergast(
            f"{year}/{round}/results.json",
            operation="getHistoricRaceResults",
            error_message="Failed to fetch historic race results",
        )
        return _first(extract_mrdata(data, ("RaceTable", "Races"), operation="getHistoricRaceResults"))

    async def get_driver_standings(self, year: int) -> Any:
        data = await self._fetch_ergast(
            f"{year}/driverStandings.json",
            operation="getDriverStandings",
            error_message="Failed to fetch driver standings",
        )
        return _first(
            extract_mrdata(data, ("StandingsTable", "StandingsLists"), operation="getDriverStandings")
        )

    async def get_constructor_standings(self, year: int) -> Any:
        data = await self._fetch_ergast(
            f"{year}/constructorStandings.json",
            operation="getConstructorStandings",
            error_message="Failed to fetch constructor standings",
        )
        return _first(
            extract_mrdata(
                data, ("StandingsTable", "StandingsLists"), operation="getConstructorStandings"
            )
        )

    async def get_lap_times(self, year: int, round: int, driver_id: str) -> Any:
        data = await self._fetch_ergast(
            f"{year}/{round}/drivers/{driver_id}/laps.json",
            operation="getLapTimes",
            error_message="Failed to fetch lap times",
        )
        return _first(extract_mrdata(data, ("RaceTable", "Races"), operation="getLapTimes"))

    async def get_race_calendar(self, year: int) -> Any:
        data = await self._fetch_ergast(
            f"{year}.json",
            operation="getRaceCalendar",
            error_message="Failed to fetch race calendar",
        )
        return extract_mrdata(data, ("RaceTable", "Races"), operation="getRaceCalendar")

    async def get_circuit_info(self, circuit_id: str) -> Any:
        data = await self._fetch_ergast(
            f"circuits/{circuit_id}.json",
            operation="getCircuitInfo",
            error_message="Failed to fetch circuit information",
        )
        return _first(extract_mrdata(data, ("CircuitTable", "Circuits"), operation="getCircuitInfo"))

    async def get_season_list(self, limit: int = 100) -> Any:
        data = await self._fetch_ergast(
            "seasons.json",
            params={"limit": limit},
            operation="getSeasonList",
            error_message="Failed to fetch season list",
        )
        return extract_mrdata(data, ("SeasonTable", "Seasons"), operation="getSeasonList")

    async def get_qualifying_results(self, year: int, round: int) -> Any:
        data = await self._fetch_ergast(
            f"{year}/{round}/qualifying.json",
            operation="getQualifyingResults",
            error_message="Failed to fetch qualifying results",
        )
        return _first(extract_mrdata(data, ("RaceTable", "Races"), operation="getQualifyingResults"))

    async def get_driver_information(self, driver_id: str) -> Any:
        data = await self._fetch_ergast(
            f"drivers/{driver_id}.json",
            operation="getDriverInformation",
            error_message="Failed to fetch driver information",
        )
        return _first(extract_mrdata(data, ("DriverTable", "Drivers"), operation="getDriverInformation"))

    async def get_constructor_information(self, constructor_id: str) -> Any:
        data = await self._fetch_ergast(
            f"constructors/{constructor_id}.json",
            operation="getConstructorInformation",
            error_message="Failed to fetch constructor information",
        )
        return _first(
            extract_mrdata(
                data, ("ConstructorTable", "Constructors"), operation="getConstructorInformation"
            )
        )

    # ── Maintenance ────────────────────────────────────────────

    def clear_cache(self) -> dict[str, str]:
        """Drop every cached response."""
        self._cache.clear()
        return {"message": "Cache cleared successfully"}
