"""Balance service.

Reads on-chain account state and normalizes raw integer amounts with the
token's decimals. A missing account is a zero balance, not an error. Transport
failures surface as TransientNetworkError without silent retries.
"""

import logging
from typing import Optional

from jupiter_mcp.chain.base import ChainClient
from jupiter_mcp.tokens import SOL_DECIMALS, TokenAmount, is_native, resolve_mint
from jupiter_mcp.utils import format_token_amount

logger = logging.getLogger(__name__)


class BalanceService:
    """Service for fetching wallet balances from blockchain state."""

    def __init__(self, chain: ChainClient):
        self.chain = chain

    async def get_balance(self, wallet_address: str, token_mint: Optional[str] = None) -> TokenAmount:
        """Get the balance of a wallet for a mint, or native SOL.

        Args:
            wallet_address: Owner public key
            token_mint: Mint address or symbol; None / "SOL" / "native" for lamports

        Returns:
            TokenAmount (zero when the account does not exist)
        """
        if is_native(token_mint):
            lamports = await self.chain.get_native_balance(wallet_address)
            logger.info(f"Native balance for {wallet_address}: {lamports} lamports")
            return TokenAmount(mint=None, raw_amount=lamports, decimals=SOL_DECIMALS)

        mint = resolve_mint(token_mint)
        balance = await self.chain.get_token_balance(wallet_address, mint)
        if balance is not None:
            logger.info(
                f"Token balance for {wallet_address}: {balance.raw_amount} of {mint} "
                f"({balance.account_count} account(s))"
            )
            return TokenAmount(mint=mint, raw_amount=balance.raw_amount, decimals=balance.decimals)

        # No token account: zero, with the mint's precision when it exists
        decimals = await self.chain.get_mint_decimals(mint)
        logger.info(f"No token account for {wallet_address} and {mint}; balance is 0")
        return TokenAmount.zero(mint, decimals if decimals is not None else 0)


def balance_to_dict(wallet_address: str, amount: TokenAmount) -> dict:
    """Tool payload for get_balance."""
    return {
        "wallet_address": wallet_address,
        "token_mint": amount.mint,
        "raw_amount": str(amount.raw_amount),
        "decimals": amount.decimals,
        "display_amount": format_token_amount(amount.display_amount, amount.decimals),
    }
