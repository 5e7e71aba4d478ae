"""Parsing and formatting helpers."""

from decimal import Decimal
from typing import Any, Optional

from solders.pubkey import Pubkey

from jupiter_mcp.config import SolanaNetwork
from jupiter_mcp.errors import ValidationError

EXPLORER_TX_URL = "https://explorer.solana.com/tx"


def parse_pubkey(value: str, field: str = "address") -> Pubkey:
    """Parse a base58 public key, raising ValidationError when invalid."""
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field} '{value}': {e}", {"field": field})


def parse_amount(value: Any, field: str = "amount") -> int:
    """Parse a positive integer amount given as int or digit string."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", {"field": field})
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.strip().isdigit():
        amount = int(value.strip())
    elif isinstance(value, float) and value.is_integer():
        amount = int(value)
    else:
        raise ValidationError(
            f"Invalid {field} '{value}': expected a positive integer in the token's smallest unit",
            {"field": field},
        )
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than zero", {"field": field})
    if amount >= 2**64:
        raise ValidationError(f"{field} exceeds the u64 range", {"field": field})
    return amount


def format_token_amount(value: Decimal, decimals: int) -> str:
    """Format a token amount with exactly `decimals` places."""
    return f"{value:.{decimals}f}"


def get_explorer_url(signature: str, network: Optional[SolanaNetwork] = None) -> str:
    """Explorer URL for a transaction signature."""
    url = f"{EXPLORER_TX_URL}/{signature}"
    cluster = network.cluster_param if network else None
    if cluster:
        url = f"{url}?cluster={cluster}"
    return url
