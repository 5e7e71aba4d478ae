"""Tool definitions and argument models.

Arguments are validated before any external call. Snake_case names are the
canonical form; the camelCase names of earlier clients are accepted as aliases.
"""

from typing import Any, Optional, Type

from mcp.types import Tool
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from jupiter_mcp.errors import ValidationError
from jupiter_mcp.tokens import is_native, resolve_mint
from jupiter_mcp.utils import parse_amount, parse_pubkey

BASE58_PATTERN = r"^[1-9A-HJ-NP-Za-km-z]{32,44}$"
MAX_SLIPPAGE_BPS = 10_000

_TOKEN_DESCRIPTION = "Token mint address, or a well-known symbol (SOL, USDC, USDT, JUP, BONK, ...)"

# Legacy tool names
TOOL_ALIASES = {"get_token_balance": "get_balance"}


def _check_pubkey(value: str, field: str) -> str:
    try:
        parse_pubkey(value, field)
    except ValidationError as e:
        raise ValueError(e.message)
    return value


def _check_token(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} must be a non-empty string")
    return _check_pubkey(resolve_mint(value), field)


class ToolArguments(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class GetBalanceArgs(ToolArguments):
    wallet_address: str = Field(
        validation_alias=AliasChoices("wallet_address", "walletAddress"),
        pattern=BASE58_PATTERN,
        description="Wallet address to check",
    )
    token_mint: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("token_mint", "tokenMint"),
        description=f"{_TOKEN_DESCRIPTION}. Omit for native SOL.",
    )

    @field_validator("wallet_address", mode="before")
    @classmethod
    def _wallet(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("wallet_address must be a non-empty string")
        return _check_pubkey(value.strip(), "wallet_address")

    @field_validator("token_mint", mode="before")
    @classmethod
    def _mint(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str) or not value.strip():
            raise ValueError("token_mint must be a non-empty string")
        if is_native(value):
            return None
        return _check_token(value, "token_mint")


class SwapArgs(ToolArguments):
    """Arguments shared by get_quote and execute_swap."""

    input_mint: str = Field(
        validation_alias=AliasChoices("input_mint", "inputMint"),
        min_length=1,
        description=f"Token to swap FROM. {_TOKEN_DESCRIPTION}",
    )
    output_mint: str = Field(
        validation_alias=AliasChoices("output_mint", "outputMint"),
        min_length=1,
        description=f"Token to swap TO. {_TOKEN_DESCRIPTION}",
    )
    # Digit strings are accepted for amounts above 2**53
    amount: int = Field(
        description="Input amount in the token's smallest unit (1 SOL = 1000000000, 1 USDC = 1000000)",
        json_schema_extra={"type": ["integer", "string"]},
    )
    slippage_bps: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("slippage_bps", "slippageBps"),
        ge=1,
        le=MAX_SLIPPAGE_BPS,
        description="Maximum slippage in basis points (100 bps = 1%). Default 50.",
    )

    @field_validator("input_mint", "output_mint", mode="before")
    @classmethod
    def _mints(cls, value: Any, info) -> str:
        return _check_token(value, info.field_name)

    @field_validator("amount", mode="before")
    @classmethod
    def _amount(cls, value: Any) -> int:
        try:
            return parse_amount(value)
        except ValidationError as e:
            raise ValueError(e.message)

    @field_validator("slippage_bps", mode="before")
    @classmethod
    def _slippage(cls, value: Any) -> Optional[int]:
        if value is None:
            return None
        bps = value
        if isinstance(bps, float) and bps.is_integer():
            bps = int(bps)
        elif isinstance(bps, str) and bps.strip().isdigit():
            bps = int(bps.strip())
        if isinstance(bps, bool) or not isinstance(bps, int):
            raise ValueError(f"slippage_bps must be a whole number of basis points, got {value!r}")
        if not 0 < bps <= MAX_SLIPPAGE_BPS:
            raise ValueError(f"slippage_bps must be between 1 and {MAX_SLIPPAGE_BPS}")
        return bps

    @model_validator(mode="after")
    def _distinct(self) -> "SwapArgs":
        if self.input_mint == self.output_mint:
            raise ValueError("input_mint and output_mint must differ")
        return self



def _tool(name: str, description: str, arguments: Type[ToolArguments]) -> Tool:
    return Tool(name=name, description=description, inputSchema=arguments.model_json_schema())


TOOLS: dict[str, Tool] = {
    "get_balance": _tool(
        "get_balance",
        "Get the SOL or SPL token balance of a wallet.",
        GetBalanceArgs,
    ),
    "get_quote": _tool(
        "get_quote",
        "Get a price quote for swapping tokens on Solana through the Jupiter "
        "aggregator: expected output, price impact and the best route.",
        SwapArgs,
    ),
    "execute_swap": _tool(
        "execute_swap",
        "Swap tokens with the server wallet: fetches a fresh quote, signs, "
        "submits and waits for confirmation. An IndeterminateError means the "
        "outcome is unknown; check the signature before retrying.",
        SwapArgs,
    ),
}

TOOL_ARGUMENTS: dict[str, Type[ToolArguments]] = {
    "get_balance": GetBalanceArgs,
    "get_quote": SwapArgs,
    "execute_swap": SwapArgs,
}


def list_tools() -> list[Tool]:
    return list(TOOLS.values())


def resolve_tool(name: str) -> Optional[str]:
    """Canonical tool name for a name or legacy alias, None if unknown."""
    canonical = TOOL_ALIASES.get(name, name)
    return canonical if canonical in TOOLS else None
