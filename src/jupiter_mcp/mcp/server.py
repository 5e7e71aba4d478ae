"""MCP server built on the SDK's low-level Server."""

import logging
from typing import Any, Optional

from mcp import types
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.shared.exceptions import McpError
from mcp.shared.version import SUPPORTED_PROTOCOL_VERSIONS
from pydantic import ValidationError as PydanticValidationError

from jupiter_mcp import __version__
from jupiter_mcp.mcp.dispatcher import RequestId, ToolDispatcher, ToolRequest
from jupiter_mcp.mcp.tools import list_tools, resolve_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "jupiter-mcp"


class McpServer:
    """Registers the tools with an MCP Server and serves them over a transport."""

    def __init__(self, dispatcher: ToolDispatcher):
        self.dispatcher = dispatcher
        self.app = Server(SERVER_NAME, version=__version__)
        self._register_handlers()

    def _register_handlers(self) -> None:
        @self.app.list_tools()
        async def handle_list_tools() -> list[types.Tool]:
            return list_tools()

        # Arguments are validated by the pydantic models, which also accept legacy aliases
        @self.app.call_tool(validate_input=False)
        async def handle_call_tool(name: str, arguments: dict) -> types.CallToolResult:
            return await self.call_tool(name, arguments, self.app.request_context.request_id)

    async def call_tool(
        self, name: str, arguments: Any, correlation_id: Optional[RequestId] = None
    ) -> types.CallToolResult:
        """Run one tool call; failures come back as an error result."""
        response = await self.dispatcher.dispatch(
            ToolRequest(method=name, arguments=arguments, correlation_id=correlation_id)
        )
        return response.to_call_tool_result()

    def initialize_result(self, requested_version: Any = None) -> types.InitializeResult:
        options = self.app.create_initialization_options()
        if requested_version in SUPPORTED_PROTOCOL_VERSIONS:
            version = requested_version
        else:
            version = types.LATEST_PROTOCOL_VERSION
        return types.InitializeResult(
            protocolVersion=version,
            capabilities=options.capabilities,
            serverInfo=types.Implementation(name=options.server_name, version=options.server_version),
        )

    async def handle_method(self, method: str, params: Any, request_id: Optional[RequestId] = None) -> dict:
        """Answer one request received outside an SDK session.

        Tool names are also accepted as methods, with params as the arguments.

        Raises:
            McpError: unknown method or malformed tools/call params
        """
        if method == "initialize":
            requested = params.get("protocolVersion") if isinstance(params, dict) else None
            result = self.initialize_result(requested)
        elif method == "ping":
            result = types.EmptyResult()
        elif method == "tools/list":
            result = types.ListToolsResult(tools=list_tools())
        elif method == "tools/call":
            try:
                call = types.CallToolRequestParams.model_validate(params or {})
            except PydanticValidationError:
                raise McpError(
                    types.ErrorData(code=types.INVALID_PARAMS, message="tools/call requires params.name")
                )
            result = await self.call_tool(call.name, call.arguments or {}, request_id)
        elif resolve_tool(method) is not None:
            result = await self.call_tool(method, params, request_id)
        else:
            logger.warning(f"Unknown method: {method}")
            raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message=f"Method not found: {method}"))

        return result.model_dump(by_alias=True, mode="json", exclude_none=True)

    async def run(self, read_stream, write_stream) -> None:
        """Serve one MCP session over a pair of message streams.

        Requests run in the session's task group; cancelling this coroutine
        cancels them and waits for them to unwind.
        """
        await self.app.run(read_stream, write_stream, self.app.create_initialization_options())

    async def run_stdio(self) -> None:
        logger.info("Serving MCP over stdio")
        async with stdio_server() as (read_stream, write_stream):
            await self.run(read_stream, write_stream)
