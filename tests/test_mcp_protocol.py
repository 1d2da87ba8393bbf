"""Tests for MCP JSON-RPC message handling and the tool registry."""

import json

import pytest

from f1_mcp.core.errors import UpstreamAppError
from f1_mcp.mcp.protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    MCP_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    MCPProtocolHandler,
)
from f1_mcp.mcp.tools import ToolRegistry, ToolSpec, build_f1_tools
from f1_mcp.schemas.tools import NoArguments
from f1_mcp.services.f1_data_service import F1DataService
from f1_mcp.utils.ttl_cache import TTLCache

OPENF1 = "https://openf1.test/v1"
ERGAST = "https://ergast.test/f1"

EXPECTED_TOOLS = {
    "getLiveTimingData",
    "getCurrentSessionStatus",
    "getDriverInfo",
    "getHistoricRaceResults",
    "getDriverStandings",
    "getConstructorStandings",
    "getLapTimes",
    "getWeatherData",
    "getCarData",
    "getPitStopData",
    "getTeamRadio",
    "getRaceControlMessages",
    "getHistoricalSessions",
    "getTyreStrategy",
    "getRaceCalendar",
    "getCircuitInfo",
    "getSeasonList",
    "getQualifyingResults",
    "getDriverInformation",
    "getConstructorInformation",
    "clearCache",
}


@pytest.fixture
def service(clock, stub_upstream) -> F1DataService:
    return F1DataService(
        cache=TTLCache(clock=clock),
        upstream=stub_upstream,
        openf1_base_url=OPENF1,
        ergast_base_url=ERGAST,
    )


@pytest.fixture
def handler(service) -> MCPProtocolHandler:
    return MCPProtocolHandler(
        registry=build_f1_tools(service),
        server_name="f1-mcp-server",
        server_version="1.0.0",
    )


ERGAST_TOOL_CASES = [
    (
        "getHistoricRaceResults",
        {"year": 2023, "round": 5},
        "/2023/5/results.json",
        {"RaceTable": {"Races": [{"raceName": "Miami Grand Prix"}]}},
        {"raceName": "Miami Grand Prix"},
    ),
    (
        "getDriverStandings",
        {"year": 2023},
        "/2023/driverStandings.json",
        {"StandingsTable": {"StandingsLists": [{"season": "2023", "DriverStandings": []}]}},
        {"season": "2023", "DriverStandings": []},
    ),
    (
        "getConstructorStandings",
        {"year": 2023},
        "/2023/constructorStandings.json",
        {"StandingsTable": {"StandingsLists": [{"season": "2023", "ConstructorStandings": []}]}},
        {"season": "2023", "ConstructorStandings": []},
    ),
    (
        "getLapTimes",
        {"year": 2023, "round": 1, "driverId": "max_verstappen"},
        "/2023/1/drivers/max_verstappen/laps.json",
        {"RaceTable": {"Races": [{"round": "1", "Laps": [{"number": "1"}]}]}},
        {"round": "1", "Laps": [{"number": "1"}]},
    ),
    (
        "getRaceCalendar",
        {"year": 2023},
        "/2023.json",
        {"RaceTable": {"Races": [{"round": "1"}, {"round": "2"}]}},
        [{"round": "1"}, {"round": "2"}],
    ),
    (
        "getCircuitInfo",
        {"circuitId": "monza"},
        "/circuits/monza.json",
        {"CircuitTable": {"Circuits": [{"circuitId": "monza"}]}},
        {"circuitId": "monza"},
    ),
    (
        "getSeasonList",
        {"limit": 10},
        "/seasons.json",
        {"SeasonTable": {"Seasons": [{"season": "1950"}, {"season": "1951"}]}},
        [{"season": "1950"}, {"season": "1951"}],
    ),
    (
        "getQualifyingResults",
        {"year": 2023, "round": 5},
        "/2023/5/qualifying.json",
        {"RaceTable": {"Races": [{"QualifyingResults": [{"position": "1"}]}]}},
        {"QualifyingResults": [{"position": "1"}]},
    ),
    (
        "getDriverInformation",
        {"driverId": "hamilton"},
        "/drivers/hamilton.json",
        {"DriverTable": {"Drivers": [{"driverId": "hamilton"}]}},
        {"driverId": "hamilton"},
    ),
    (
        "getConstructorInformation",
        {"constructorId": "ferrari"},
        "/constructors/ferrari.json",
        {"ConstructorTable": {"Constructors": [{"constructorId": "ferrari"}]}},
        {"constructorId": "ferrari"},
    ),
]


def _call(name: str, arguments: dict | None = None, msg_id: int = 1) -> dict:
    params: dict = {"name": name}
    if arguments is not None:
        params["arguments"] = arguments
    return {"jsonrpc": "2.0", "id": msg_id, "method": "tools/call", "params": params}


class TestEnvelope:
    @pytest.mark.asyncio
    async def test_initialize(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 1, "method": "initialize"})

        result = resp["result"]
        assert result["protocolVersion"] == MCP_PROTOCOL_VERSION
        assert result["serverInfo"] == {"name": "f1-mcp-server", "version": "1.0.0"}
        assert result["capabilities"]["tools"]["listChanged"] is False

    @pytest.mark.asyncio
    async def test_ping(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 7, "method": "ping"})

        assert resp == {"jsonrpc": "2.0", "id": 7, "result": {}}

    @pytest.mark.asyncio
    async def test_notification_returns_none(self, handler) -> None:
        resp = await handler.handle_message(
            {"jsonrpc": "2.0", "method": "notifications/initialized"}
        )

        assert resp is None

    @pytest.mark.asyncio
    async def test_wrong_version(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "1.0", "id": 1, "method": "ping"})

        assert resp["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_non_object_message(self, handler) -> None:
        resp = await handler.handle_message("ping")

        assert resp["error"]["code"] == INVALID_REQUEST
        assert resp["id"] is None

    @pytest.mark.asyncio
    async def test_missing_method(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 1})

        assert resp["error"]["code"] == INVALID_REQUEST

    @pytest.mark.asyncio
    async def test_unknown_method(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 1, "method": "resources/list"})

        assert resp["error"]["code"] == METHOD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_params_must_be_object(self, handler) -> None:
        resp = await handler.handle_message(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": [1, 2]}
        )

        assert resp["error"]["code"] == INVALID_PARAMS


class TestToolsList:
    @pytest.mark.asyncio
    async def test_lists_every_tool(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

        tools = resp["result"]["tools"]
        assert {tool["name"] for tool in tools} == EXPECTED_TOOLS
        assert all(tool["description"] for tool in tools)

    @pytest.mark.asyncio
    async def test_input_schema_uses_camel_case(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

        lap_times = next(t for t in resp["result"]["tools"] if t["name"] == "getLapTimes")
        schema = lap_times["inputSchema"]
        assert schema["type"] == "object"
        assert set(schema["required"]) == {"year", "round", "driverId"}
        assert "title" not in schema

    @pytest.mark.asyncio
    async def test_no_argument_tool_has_empty_properties(self, handler) -> None:
        resp = await handler.handle_message({"jsonrpc": "2.0", "id": 1, "method": "tools/list"})

        live = next(t for t in resp["result"]["tools"] if t["name"] == "getLiveTimingData")
        assert live["inputSchema"]["properties"] == {}


class TestToolsCall:
    @pytest.mark.asyncio
    async def test_success_returns_text_content(self, handler, stub_upstream) -> None:
        stub_upstream.enqueue(f"{OPENF1}/weather", [{"air_temperature": 21.5}])

        resp = await handler.handle_message(_call("getWeatherData", {"sessionKey": "9161"}))

        result = resp["result"]
        assert result["isError"] is False
        assert result["content"][0]["type"] == "text"
        assert json.loads(result["content"][0]["text"]) == [{"air_temperature": 21.5}]
        assert stub_upstream.calls[-1] == (f"{OPENF1}/weather", {"session_key": "9161"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("name", "arguments", "path", "tables", "expected"),
        ERGAST_TOOL_CASES,
        ids=[case[0] for case in ERGAST_TOOL_CASES],
    )
    async def test_ergast_tool_returns_extracted_data(
        self, handler, stub_upstream, name, arguments, path, tables, expected
    ) -> None:
        stub_upstream.enqueue(f"{ERGAST}{path}", {"MRData": tables})

        resp = await handler.handle_message(_call(name, arguments))

        result = resp["result"]
        assert result["isError"] is False
        assert json.loads(result["content"][0]["text"]) == expected
        assert stub_upstream.calls_to(f"{ERGAST}{path}") == 1

    @pytest.mark.asyncio
    async def test_season_list_passes_limit(self, handler, stub_upstream) -> None:
        await handler.handle_message(_call("getSeasonList", {"limit": 10}))

        assert stub_upstream.calls[-1] == (f"{ERGAST}/seasons.json", {"limit": 10})

    @pytest.mark.asyncio
    async def test_snake_case_arguments_accepted(self, handler, stub_upstream) -> None:
        await handler.handle_message(_call("getDriverInfo", {"driver_id": 44}))

        assert stub_upstream.calls[-1] == (f"{OPENF1}/drivers", {"driver_number": "44"})

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, handler, stub_upstream) -> None:
        resp = await handler.handle_message(_call("getDriverStandings", {"year": 1900}))

        error = resp["error"]
        assert error["code"] == INVALID_PARAMS
        assert error["data"]["code"] == "invalid_arguments"
        assert error["data"]["details"]["tool"] == "getDriverStandings"
        assert stub_upstream.calls == []

    @pytest.mark.asyncio
    async def test_unexpected_argument_rejected(self, handler) -> None:
        resp = await handler.handle_message(_call("getLiveTimingData", {"foo": "bar"}))

        assert resp["error"]["data"]["code"] == "invalid_arguments"

    @pytest.mark.asyncio
    async def test_unknown_tool(self, handler) -> None:
        resp = await handler.handle_message(_call("getTelemetry", {}))

        assert resp["error"]["code"] == INVALID_PARAMS
        assert resp["error"]["data"]["code"] == "unknown_tool"

    @pytest.mark.asyncio
    async def test_missing_tool_name(self, handler) -> None:
        resp = await handler.handle_message(
            {"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": {}}
        )

        assert resp["error"]["data"]["code"] == "invalid_arguments"

    @pytest.mark.asyncio
    async def test_upstream_failure_maps_to_internal_error(self, handler, stub_upstream) -> None:
        stub_upstream.enqueue(
            f"{ERGAST}/2023/constructorStandings.json",
            UpstreamAppError(
                code="upstream_fetch_failed",
                message="Upstream returned HTTP 502",
                details={"http_status": 502},
            ),
        )

        resp = await handler.handle_message(_call("getConstructorStandings", {"year": 2023}))

        error = resp["error"]
        assert error["code"] == INTERNAL_ERROR
        assert error["message"] == "Failed to fetch constructor standings"
        assert error["data"]["code"] == "upstream_fetch_failed"
        assert error["data"]["details"]["http_status"] == 502

    @pytest.mark.asyncio
    async def test_malformed_payload_maps_to_internal_error(self, handler, stub_upstream) -> None:
        stub_upstream.enqueue(f"{ERGAST}/drivers/hamilton.json", {"unexpected": True})

        resp = await handler.handle_message(_call("getDriverInformation", {"driverId": "hamilton"}))

        assert resp["error"]["code"] == INTERNAL_ERROR
        assert resp["error"]["data"]["code"] == "malformed_upstream_payload"

    @pytest.mark.asyncio
    async def test_clear_cache_tool(self, handler, service, stub_upstream) -> None:
        await handler.handle_message(_call("getLiveTimingData"))
        resp = await handler.handle_message(_call("clearCache"))

        assert json.loads(resp["result"]["content"][0]["text"]) == {
            "message": "Cache cleared successfully"
        }
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_hidden(self) -> None:
        async def explode(_: NoArguments) -> None:
            raise RuntimeError("secret internals")

        handler = MCPProtocolHandler(
            registry=ToolRegistry([ToolSpec("explode", "Fails.", NoArguments, explode)]),
            server_name="s",
            server_version="0",
        )

        resp = await handler.handle_message(_call("explode"))

        assert resp["error"]["code"] == INTERNAL_ERROR
        assert resp["error"]["data"]["code"] == "internal_server_error"
        assert "secret internals" not in json.dumps(resp)


def test_registry_rejects_duplicate_names() -> None:
    async def noop(_: NoArguments) -> None:
        return None

    registry = ToolRegistry([ToolSpec("a", "A.", NoArguments, noop)])

    with pytest.raises(ValueError):
        registry.register(ToolSpec("a", "Again.", NoArguments, noop))
    assert "a" in registry
    assert len(registry) == 1
