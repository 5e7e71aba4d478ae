"""Tool dispatcher.

Validates a tool call, routes it to the balance service or the swap pipeline
and wraps the outcome in a ToolResponse. Invalid calls fail before any
external collaborator is contacted.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union

from mcp.types import CallToolResult, TextContent
from pydantic import ValidationError as PydanticValidationError

from jupiter_mcp.errors import JupiterMcpError, ValidationError
from jupiter_mcp.mcp.tools import TOOL_ARGUMENTS, GetBalanceArgs, SwapArgs, resolve_tool
from jupiter_mcp.services.balance_service import BalanceService, balance_to_dict
from jupiter_mcp.swap.executor import SwapExecutor, SwapRequest

logger = logging.getLogger(__name__)

RequestId = Union[str, int]


@dataclass(frozen=True)
class ToolRequest:
    """One tool call: method, named arguments and correlation id."""

    method: str
    arguments: Any = field(default_factory=dict)
    correlation_id: Optional[RequestId] = None


@dataclass(frozen=True)
class ToolResponse:
    """Result payload or structured error for one tool call."""

    correlation_id: Optional[RequestId]
    result: Optional[dict] = None
    error: Optional[dict] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_call_tool_result(self) -> CallToolResult:
        """MCP tool result with text and structured content."""
        payload = {"error": self.error} if self.is_error else self.result
        if self.is_error:
            text = f"Error [{self.error['kind']}]: {self.error['message']}"
        else:
            text = json.dumps(payload, indent=2)
        return CallToolResult(
            content=[TextContent(type="text", text=text)],
            structuredContent=payload,
            isError=self.is_error,
        )


def _describe_validation_error(exc: PydanticValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        message = err.get("msg", "invalid value").removeprefix("Value error, ")
        problems.append(f"{location}: {message}")
    return "; ".join(problems)


class ToolDispatcher:
    """Routes validated tool calls to services."""

    def __init__(self, balance_service: BalanceService, executor: SwapExecutor, default_slippage_bps: int = 50):
        self.balance_service = balance_service
        self.executor = executor
        self.default_slippage_bps = default_slippage_bps
        self._handlers: dict[str, Callable[[Any], Awaitable[dict]]] = {
            "get_balance": self._get_balance,
            "get_quote": self._get_quote,
            "execute_swap": self._execute_swap,
        }

    def _error(self, request: ToolRequest, error: JupiterMcpError) -> ToolResponse:
        return ToolResponse(correlation_id=request.correlation_id, error=error.to_dict())

    async def dispatch(self, request: ToolRequest) -> ToolResponse:
        """Validate and execute one tool call."""
        name = resolve_tool(request.method)
        if name is None:
            logger.warning(f"Unknown tool: {request.method}")
            return self._error(request, ValidationError(f"Unknown tool: {request.method}"))

        arguments = request.arguments if request.arguments is not None else {}
        if not isinstance(arguments, dict):
            return self._error(request, ValidationError("Tool arguments must be an object"))

        try:
            args = TOOL_ARGUMENTS[name].model_validate(arguments)
        except PydanticValidationError as e:
            logger.info(f"Rejected {name} call: {_describe_validation_error(e)}")
            return self._error(
                request,
                ValidationError(f"Invalid arguments: {_describe_validation_error(e)}"),
            )

        logger.info(f"Dispatching {name} (id={request.correlation_id})")
        try:
            result = await self._handlers[name](args)
        except JupiterMcpError as e:
            logger.warning(f"{name} failed: {e.kind}: {e.message}")
            return self._error(request, e)
        except Exception:
            logger.exception(f"Unexpected error in {name}")
            return self._error(request, JupiterMcpError(f"Internal error while running {name}"))

        return ToolResponse(correlation_id=request.correlation_id, result=result)

    def _swap_request(self, args: SwapArgs) -> SwapRequest:
        return SwapRequest(
            input_mint=args.input_mint,
            output_mint=args.output_mint,
            amount=args.amount,
            slippage_bps=args.slippage_bps or self.default_slippage_bps,
        )

    async def _get_balance(self, args: GetBalanceArgs) -> dict:
        amount = await self.balance_service.get_balance(args.wallet_address, args.token_mint)
        return balance_to_dict(args.wallet_address, amount)

    async def _get_quote(self, args: SwapArgs) -> dict:
        quote = await self.executor.get_quote(self._swap_request(args))
        return quote.to_dict()

    async def _execute_swap(self, args: SwapArgs) -> dict:
        result = await self.executor.execute_swap(self._swap_request(args))
        if result.error is not None:
            raise result.error
        return result.to_dict()

