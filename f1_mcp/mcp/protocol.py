"""Protocol-layer helpers for MCP JSON-RPC request handling."""

from __future__ import annotations

import json
import logging
from typing import Any

from f1_mcp.core.errors import (
    AppError,
    MalformedPayloadAppError,
    UpstreamAppError,
    ValidationAppError,
)
from f1_mcp.mcp.tools import ToolRegistry

logger = logging.getLogger(__name__)

MCP_PROTOCOL_VERSION = "2025-06-18"

# Standard JSON-RPC error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def jsonrpc_response(id: Any, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 success response."""
    return {"jsonrpc": "2.0", "id": id, "result": result}


def jsonrpc_error(
    id: Any,
    code: int,
    message: str,
    data: Any = None,
) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 error response."""
    error: dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": error}


def _app_error_to_jsonrpc(msg_id: Any, exc: AppError) -> dict[str, Any]:
    """Map a typed application error to a JSON-RPC error object.

    ``data.code`` keeps the machine-readable application code so callers can
    tell an upstream failure from a malformed payload or bad arguments.
    """
    if isinstance(exc, ValidationAppError):
        rpc_code = INVALID_PARAMS
    else:
        rpc_code = INTERNAL_ERROR

    data: dict[str, Any] = {"code": exc.code}
    if exc.details:
        data["details"] = exc.details
    return jsonrpc_error(msg_id, rpc_code, exc.message, data)


class MCPProtocolHandler:
    """
    Handles MCP methods and JSON-RPC envelope validation.

    Keeps protocol and tool-execution behavior independent from HTTP routing
    so rate limiting and transport concerns stay in the route layer.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        server_name: str,
        server_version: str,
        instructions: str | None = None,
    ) -> None:
        self._registry = registry
        self._server_name = server_name
        self._server_version = server_version
        self._instructions = instructions

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        """Route one JSON-RPC 2.0 message. Returns None for notifications."""
        if not isinstance(message, dict):
            return jsonrpc_error(None, INVALID_REQUEST, "Invalid Request")

        if message.get("jsonrpc") != "2.0":
            return jsonrpc_error(
                message.get("id"),
                INVALID_REQUEST,
                "Invalid JSON-RPC version",
            )

        method = message.get("method")
        params = message.get("params") or {}
        msg_id = message.get("id")

        if not method:
            return jsonrpc_error(msg_id, INVALID_REQUEST, "Missing method")
        if not isinstance(params, dict):
            return jsonrpc_error(msg_id, INVALID_PARAMS, "'params' must be an object")

        is_notification = msg_id is None

        try:
            if method == "initialize":
                result = self.handle_initialize(params)
            elif method == "tools/list":
                result = self.handle_tools_list(params)
            elif method == "tools/call":
                result = await self.handle_tools_call(params)
            elif method in ("ping", "notifications/initialized"):
                result = {}
            else:
                return jsonrpc_error(
                    msg_id,
                    METHOD_NOT_FOUND,
                    f"Method not found: {method}",
                )
        except AppError as exc:
            level = logging.WARNING if isinstance(exc, ValidationAppError) else logging.ERROR
            logger.log(
                level,
                "mcp.tool_error",
                extra={
                    "method": method,
                    "tool": params.get("name"),
                    "error_code": exc.code,
                    "upstream": isinstance(exc, (UpstreamAppError, MalformedPayloadAppError)),
                },
            )
            return _app_error_to_jsonrpc(msg_id, exc)
        except Exception as exc:
            logger.exception("mcp.unhandled_exception", extra={"method": method})
            return jsonrpc_error(
                msg_id,
                INTERNAL_ERROR,
                "An unexpected error occurred. Please try again later.",
                {"code": "internal_server_error", "error_type": type(exc).__name__},
            )

        if is_notification:
            return None
        return jsonrpc_response(msg_id, result)

    def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``initialize`` and return server capabilities."""
        _ = params
        return {
            "protocolVersion": MCP_PROTOCOL_VERSION,
            "capabilities": {
                "tools": {
                    "listChanged": False,
                },
            },
            "serverInfo": {
                "name": self._server_name,
                "version": self._server_version,
            },
            **({"instructions": self._instructions} if self._instructions else {}),
        }

    def handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``tools/list`` and return MCP tool schemas."""
        _ = params
        return {
            "tools": [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "inputSchema": tool.input_schema(),
                }
                for tool in self._registry.list()
            ]
        }

    async def handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ``tools/call`` and return MCP content result."""
        tool_name = params.get("name")
        if not tool_name:
            raise ValidationAppError(
                code="invalid_arguments",
                message="Missing 'name' in tools/call params",
            )

        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise ValidationAppError(
                code="invalid_arguments",
                message="'arguments' must be an object",
                details={"tool": tool_name},
            )

        output = await self._registry.call(tool_name, arguments)
        return {
            "content": [{"type": "text", "text": json.dumps(output, default=str)}],
            "isError": False,
        }
