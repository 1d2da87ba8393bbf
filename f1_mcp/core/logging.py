"""Structured logging: JSON lines, request correlation and field scrubbing.

Every record leaving a handler installed by ``configure_logging`` goes
through two filters:

- ``RequestIdFilter`` stamps the request id of the current HTTP request.
- ``SensitiveDataFilter`` scrubs extra fields. Credentials become
  ``[REDACTED]``; client identities become a short SHA-256 digest so a
  single client can still be followed across log lines.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from f1_mcp.core.config import LogSettings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "authorization",
        "api_key",
        "x-api-key",
        "token",
        "secret",
        "password",
        "cookie",
        "set-cookie",
    }
)

HASHED_KEYS_DEFAULT: frozenset[str] = frozenset({"client_id", "x-client-id"})

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    """Store the current request id in a context variable.

    Args:
        request_id: Correlation identifier to associate with subsequent logs.
    """

    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    """Fetch the current request id from context.

    Returns:
        Optional request id string if previously set.
    """

    return _request_id_var.get()


def clear_request_id() -> None:
    """Clear any stored request id from context."""

    _request_id_var.set(None)


def hash_identifier(value: str) -> str:
    """Short, stable digest of an identifier so logs never carry it verbatim."""

    return hashlib.sha256(value.encode()).hexdigest()[:16]


def _extra_fields(record: LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class _Scrubber:
    """Replace sensitive values inside arbitrarily nested extras."""

    def __init__(self, sensitive_keys: Iterable[str], hashed_keys: Iterable[str]) -> None:
        self.sensitive_keys = {k.lower() for k in sensitive_keys}
        self.hashed_keys = {k.lower() for k in hashed_keys}

    def field(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in self.sensitive_keys:
            return REDACTED
        if lowered in self.hashed_keys:
            return hash_identifier(str(value)) if value else value
        return self.value(value)

    def value(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: self.field(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.value(v) for v in value)
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        return {key: self.field(key, value) for key, value in _extra_fields(record).items()}


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub extra fields on the record in place, before any formatter sees them."""

    def __init__(
        self,
        sensitive_keys: Iterable[str] | None = None,
        hashed_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__()
        self._scrubber = _Scrubber(
            SENSITIVE_KEYS_DEFAULT if sensitive_keys is None else sensitive_keys,
            HASHED_KEYS_DEFAULT if hashed_keys is None else hashed_keys,
        )

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "_scrubbed", False):
            return True
        for key, value in self._scrubber.extras(record).items():
            setattr(record, key, value)
        record._scrubbed = True
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, then extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        hashed_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        # Records that skipped SensitiveDataFilter are scrubbed here
        self._scrubber = _Scrubber(
            SENSITIVE_KEYS_DEFAULT if sensitive_keys is None else sensitive_keys,
            HASHED_KEYS_DEFAULT if hashed_keys is None else hashed_keys,
        )
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        if getattr(record, "_scrubbed", False):
            # Hashing twice would break correlation with ``client_hash`` fields
            payload.update(_extra_fields(record))
        else:
            payload.update(self._scrubber.extras(record))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/f1_mcp.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if not log_settings.max_bytes:
        return logging.FileHandler(file_path, encoding="utf-8")
    return RotatingFileHandler(
        file_path,
        maxBytes=log_settings.max_bytes,
        backupCount=log_settings.backup_count,
        encoding="utf-8",
    )


def configure_logging(log_settings: LogSettings, *, debug: bool = False) -> None:
    """Install a single scrubbed handler on the root logger.

    Args:
        log_settings: Resolved logging settings (level, format, output).
        debug: Force DEBUG level regardless of ``log_settings.level``.
    """

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_settings.level.upper(), logging.INFO)

    handler = _build_handler(log_settings)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if log_settings.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # uvicorn would otherwise emit its own lines alongside ours
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
    # Per-request httpx INFO lines duplicate upstream.* events
    logging.getLogger("httpx").setLevel(logging.WARNING)
