"""Pydantic schemas for MCP tool arguments.

Field names are snake_case in Python and camelCase on the wire; both forms
are accepted. Each model's JSON schema is published as the tool's
``inputSchema``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ToolArguments(BaseModel):
    """Base for tool argument models."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="forbid",
    )


class NoArguments(ToolArguments):
    """Tools that take no arguments."""


class DriverIdArgs(ToolArguments):
    driver_id: str = Field(..., min_length=1, description="Driver identifier.")


class YearArgs(ToolArguments):
    year: int = Field(..., ge=1950, description="Championship season, e.g. 2023.")


class YearRoundArgs(YearArgs):
    round: int = Field(..., ge=1, description="Round number within the season.")


class LapTimesArgs(YearRoundArgs):
    driver_id: str = Field(..., min_length=1, description="Ergast driver id, e.g. 'max_verstappen'.")


class SessionArgs(ToolArguments):
    session_key: str | None = Field(
        None, description="OpenF1 session key; omit for all sessions or 'latest'."
    )


class SessionDriverArgs(SessionArgs):
    driver_number: str | None = Field(None, description="Car number, e.g. '1'.")


class CarDataArgs(ToolArguments):
    driver_number: str = Field(..., min_length=1, description="Car number, e.g. '1'.")
    session_key: str | None = Field(None, description="OpenF1 session key.")
    filters: str | None = Field(
        None,
        description="Extra OpenF1 query string, e.g. 'speed>=315&n_gear=8'.",
    )


class HistoricalSessionsArgs(ToolArguments):
    year: int | None = Field(None, ge=2018, description="Season to search.")
    circuit_short_name: str | None = Field(None, description="e.g. 'Monza'.")
    session_name: str | None = Field(None, description="e.g. 'Race', 'Qualifying'.")
    country_name: str | None = Field(None, description="e.g. 'Italy'.")
    location: str | None = Field(None, description="e.g. 'Monza'.")


class TyreStrategyArgs(ToolArguments):
    session_key: str = Field(..., min_length=1, description="OpenF1 session key.")
    driver_number: str | None = Field(None, description="Car number, e.g. '1'.")


class CircuitArgs(ToolArguments):
    circuit_id: str = Field(..., min_length=1, description="Ergast circuit id, e.g. 'monza'.")


class ConstructorArgs(ToolArguments):
    constructor_id: str = Field(..., min_length=1, description="Ergast constructor id, e.g. 'ferrari'.")


class SeasonListArgs(ToolArguments):
    limit: int = Field(100, ge=1, le=1000, description="Maximum number of seasons to return.")
