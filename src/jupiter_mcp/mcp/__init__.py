"""MCP protocol layer."""

from jupiter_mcp.mcp.dispatcher import ToolDispatcher, ToolRequest, ToolResponse
from jupiter_mcp.mcp.server import McpServer
from jupiter_mcp.mcp.tools import TOOLS, list_tools, resolve_tool

__all__ = ["McpServer", "TOOLS", "ToolDispatcher", "ToolRequest", "ToolResponse", "list_tools", "resolve_tool"]
