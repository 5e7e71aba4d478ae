"""Token identifiers and amounts.

Well-known Solana mainnet mints can be addressed by symbol; anything else must
be a base58 mint address.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

# Wrapped SOL mint (Jupiter uses it for native SOL legs)
SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"

SOL_DECIMALS = 9

# Token mint addresses on Solana mainnet
SOLANA_TOKENS = {
    "SOL": SOL_MINT,
    "WSOL": SOL_MINT,
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "USDC": USDC_MINT,
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "WIF": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
    "PYTH": "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",
    "MNDE": "MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey",
    "HNT": "hntyVP6YFm1Hg25TN9WGLqM12b8TQmcknKrdu1oxWux",
}

# Values of token_mint that select the native token in balance lookups
NATIVE_SENTINELS = {"SOL", "NATIVE"}


def resolve_mint(token: str) -> str:
    """Map a well-known symbol to its mint; other strings pass through."""
    return SOLANA_TOKENS.get(token.strip().upper(), token.strip())


def is_native(token: Optional[str]) -> bool:
    """Check if a balance token argument selects native SOL."""
    return token is None or token.strip().upper() in NATIVE_SENTINELS


@dataclass(frozen=True)
class TokenAmount:
    """Raw integer quantity of a token with its decimal precision."""

    mint: Optional[str]  # None for native SOL
    raw_amount: int
    decimals: int

    def __post_init__(self):
        if self.raw_amount < 0:
            raise ValueError(f"raw_amount must be non-negative, got {self.raw_amount}")
        if not 0 <= self.decimals <= 255:
            raise ValueError(f"decimals must fit in u8, got {self.decimals}")

    @property
    def display_amount(self) -> Decimal:
        """raw / 10^decimals, exact."""
        return Decimal(self.raw_amount).scaleb(-self.decimals)

    @classmethod
    def zero(cls, mint: Optional[str], decimals: int) -> "TokenAmount":
        return cls(mint=mint, raw_amount=0, decimals=decimals)
