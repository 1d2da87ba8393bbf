"""Tool registry mapping MCP tool names to F1 data operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable

from pydantic import ValidationError

from f1_mcp.core.errors import ValidationAppError
from f1_mcp.schemas import tools as schemas
from f1_mcp.services.f1_data_service import F1DataService

ToolHandler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """One callable tool.

    Attributes:
        name: Wire name used in ``tools/call``.
        description: Human-readable summary shown by ``tools/list``.
        arguments: Pydantic model validating the call arguments.
        handler: Coroutine taking the validated model.
    """

    name: str
    description: str
    arguments: type[schemas.ToolArguments]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        schema = self.arguments.model_json_schema(by_alias=True)
        schema.pop("title", None)
        schema.setdefault("properties", {})
        return schema


class ToolRegistry:
    """Name-indexed collection of tools."""

    def __init__(self, tools: Iterable[ToolSpec] = ()) -> None:
        self._tools: dict[str, ToolSpec] = {}
        for tool in tools:
            self.register(tool)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def register(self, tool: ToolSpec) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def names(self) -> list[str]:
        return list(self._tools)

    def list(self) -> list[ToolSpec]:
        return list(self._tools.values())

    async def call(self, name: str, arguments: dict[str, Any]) -> Any:
        """Validate arguments and run the named tool.

        Raises:
            ValidationAppError: If the tool is unknown or arguments are invalid.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ValidationAppError(
                code="unknown_tool",
                message=f"Unknown tool: {name}",
                details={"tool": name},
            )

        try:
            args = tool.arguments.model_validate(arguments)
        except ValidationError as exc:
            raise ValidationAppError(
                code="invalid_arguments",
                message=f"Invalid arguments for {name}",
                details={
                    "tool": name,
                    "errors": exc.errors(include_url=False, include_context=False),
                },
            ) from exc

        return await tool.handler(args)


def build_f1_tools(service: F1DataService) -> ToolRegistry:
    """Register every F1 data operation plus the cache maintenance tool."""

    async def clear_cache(_: schemas.NoArguments) -> dict[str, str]:
        return service.clear_cache()

    return ToolRegistry(
        [
            ToolSpec(
                "getLiveTimingData",
                "Live timing for the current session.",
                schemas.NoArguments,
                lambda a: service.get_live_timing_data(),
            ),
            ToolSpec(
                "getCurrentSessionStatus",
                "Status of the current session.",
                schemas.NoArguments,
                lambda a: service.get_current_session_status(),
            ),
            ToolSpec(
                "getDriverInfo",
                "OpenF1 driver entries for a car number.",
                schemas.DriverIdArgs,
                lambda a: service.get_driver_info(a.driver_id),
            ),
            ToolSpec(
                "getHistoricRaceResults",
                "Race results for a season round.",
                schemas.YearRoundArgs,
                lambda a: service.get_historic_race_results(a.year, a.round),
            ),
            ToolSpec(
                "getDriverStandings",
                "Final or current driver standings for a season.",
                schemas.YearArgs,
                lambda a: service.get_driver_standings(a.year),
            ),
            ToolSpec(
                "getConstructorStandings",
                "Final or current constructor standings for a season.",
                schemas.YearArgs,
                lambda a: service.get_constructor_standings(a.year),
            ),
            ToolSpec(
                "getLapTimes",
                "Lap-by-lap timings of one driver in a race.",
                schemas.LapTimesArgs,
                lambda a: service.get_lap_times(a.year, a.round, a.driver_id),
            ),
            ToolSpec(
                "getWeatherData",
                "Track weather samples for a session.",
                schemas.SessionArgs,
                lambda a: service.get_weather_data(a.session_key),
            ),
            ToolSpec(
                "getCarData",
                "Car telemetry (speed, throttle, brake, RPM, gear, DRS).",
                schemas.CarDataArgs,
                lambda a: service.get_car_data(a.driver_number, a.session_key, a.filters),
            ),
            ToolSpec(
                "getPitStopData",
                "Pit lane visits and durations.",
                schemas.SessionDriverArgs,
                lambda a: service.get_pit_stop_data(a.session_key, a.driver_number),
            ),
            ToolSpec(
                "getTeamRadio",
                "Team radio recordings.",
                schemas.SessionDriverArgs,
                lambda a: service.get_team_radio(a.session_key, a.driver_number),
            ),
            ToolSpec(
                "getRaceControlMessages",
                "Race control messages, flags and penalties.",
                schemas.SessionArgs,
                lambda a: service.get_race_control_messages(a.session_key),
            ),
            ToolSpec(
                "getHistoricalSessions",
                "Search OpenF1 sessions by year, circuit, name, country or location.",
                schemas.HistoricalSessionsArgs,
                lambda a: service.get_historical_sessions(
                    year=a.year,
                    circuit_short_name=a.circuit_short_name,
                    session_name=a.session_name,
                    country_name=a.country_name,
                    location=a.location,
                ),
            ),
            ToolSpec(
                "getTyreStrategy",
                "Tyre stints (compound, laps, tyre age) for a session.",
                schemas.TyreStrategyArgs,
                lambda a: service.get_tyre_strategy(a.session_key, a.driver_number),
            ),
            ToolSpec(
                "getRaceCalendar",
                "All races of a season.",
                schemas.YearArgs,
                lambda a: service.get_race_calendar(a.year),
            ),
            ToolSpec(
                "getCircuitInfo",
                "Circuit name and location.",
                schemas.CircuitArgs,
                lambda a: service.get_circuit_info(a.circuit_id),
            ),
            ToolSpec(
                "getSeasonList",
                "Championship seasons.",
                schemas.SeasonListArgs,
                lambda a: service.get_season_list(a.limit),
            ),
            ToolSpec(
                "getQualifyingResults",
                "Qualifying results for a season round.",
                schemas.YearRoundArgs,
                lambda a: service.get_qualifying_results(a.year, a.round),
            ),
            ToolSpec(
                "getDriverInformation",
                "Driver biography.",
                schemas.DriverIdArgs,
                lambda a: service.get_driver_information(a.driver_id),
            ),
            ToolSpec(
                "getConstructorInformation",
                "Constructor name and nationality.",
                schemas.ConstructorArgs,
                lambda a: service.get_constructor_information(a.constructor_id),
            ),
            ToolSpec(
                "clearCache",
                "Drop every cached upstream response.",
                schemas.NoArguments,
                clear_cache,
            ),
        ]
    )
