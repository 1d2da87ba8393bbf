"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Server identity and request gating."""

    server_name: str = Field(
        "f1-mcp-server",
        description="Server name advertised during the MCP initialize handshake",
    )
    server_version: str = Field(
        "1.0.0",
        description="Server version advertised during the MCP initialize handshake",
    )
    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    host: str = Field("0.0.0.0", description="Bind host for the HTTP server")
    port: int = Field(8000, description="Bind port for the HTTP server", ge=1, le=65535)
    client_id_header: str = Field(
        "X-Client-ID",
        description="Header carrying the opaque client identity used for rate limiting",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client rate limiting on the MCP endpoint",
    )
    rate_limit_requests: int = Field(
        60,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    rate_limit_window_ms: int = Field(
        60_000,
        description="Rate limit window size in milliseconds",
        ge=1,
    )
    rate_limit_sweep_interval_ms: int = Field(
        60_000,
        description="How often idle client entries are reaped, in milliseconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Response cache configuration."""

    default_ttl_seconds: int = Field(
        300,
        description="TTL applied when a cache write does not specify one",
        ge=1,
    )
    key_prefix: str = Field(
        "mcp:",
        description="Namespace prepended to every cache key",
    )
    live_ttl_seconds: int = Field(
        10,
        description="TTL for volatile data (timing, weather, telemetry)",
        ge=1,
    )
    static_ttl_seconds: int = Field(
        300,
        description="TTL for near-static data (calendars, biographies, results)",
        ge=1,
    )
    ttl_overrides: dict[str, int] = Field(
        default_factory=dict,
        description="Per-tool TTL overrides in seconds, keyed by tool name (JSON object)",
    )
    sweep_interval_ms: int = Field(
        60_000,
        description="How often expired entries are reaped, in milliseconds",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )


class UpstreamSettings(BaseSettings):
    """Upstream F1 data providers."""

    openf1_base_url: str = Field(
        "https://api.openf1.org/v1",
        description="OpenF1 REST API base URL (live and recent session data)",
    )
    ergast_base_url: str = Field(
        "https://api.jolpi.ca/ergast/f1",
        description="Ergast-compatible REST API base URL (historical results)",
    )
    timeout_seconds: float = Field(
        30.0,
        description="Upstream request timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="UPSTREAM_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int | None = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (None disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    upstream: UpstreamSettings = Field(default_factory=UpstreamSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Defaults resolved from the environment. Components take their values as
# constructor arguments; only the app factory reads this object.
settings = Settings()
