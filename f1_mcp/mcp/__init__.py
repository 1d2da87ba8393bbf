"""MCP protocol surface: tool registry and JSON-RPC handler."""

from f1_mcp.mcp.protocol import MCPProtocolHandler
from f1_mcp.mcp.tools import ToolRegistry, ToolSpec, build_f1_tools

__all__ = [
    "MCPProtocolHandler",
    "ToolRegistry",
    "ToolSpec",
    "build_f1_tools",
]
