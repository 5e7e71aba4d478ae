"""Tests for the balance service."""

import pytest

from conftest import WALLET
from jupiter_mcp.chain.base import TokenBalance
from jupiter_mcp.services.balance_service import balance_to_dict
from jupiter_mcp.tokens import SOL_MINT, USDC_MINT

UNKNOWN_MINT = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


class TestBalanceService:
    """Tests for BalanceService.get_balance."""

    @pytest.mark.asyncio
    async def test_native_balance(self, balance_service, chain):
        chain.native_balances[WALLET] = 2_500_000_001

        amount = await balance_service.get_balance(WALLET)

        assert amount.mint is None
        assert amount.raw_amount == 2_500_000_001
        assert amount.decimals == 9
        assert balance_to_dict(WALLET, amount)["display_amount"] == "2.500000001"

    @pytest.mark.asyncio
    async def test_native_sentinel(self, balance_service, chain):
        chain.native_balances[WALLET] = 7

        amount = await balance_service.get_balance(WALLET, "native")

        assert amount.raw_amount == 7
        assert amount.mint is None

    @pytest.mark.asyncio
    async def test_token_balance(self, balance_service, chain):
        chain.token_balances[(WALLET, USDC_MINT)] = TokenBalance(raw_amount=12_345_678, decimals=6, account_count=2)

        amount = await balance_service.get_balance(WALLET, USDC_MINT)

        assert amount.raw_amount == 12_345_678
        assert amount.decimals == 6
        assert balance_to_dict(WALLET, amount) == {
            "wallet_address": WALLET,
            "token_mint": USDC_MINT,
            "raw_amount": "12345678",
            "decimals": 6,
            "display_amount": "12.345678",
        }

    @pytest.mark.asyncio
    async def test_missing_token_account_is_zero(self, balance_service, chain):
        amount = await balance_service.get_balance(WALLET, "USDC")

        assert amount.mint == USDC_MINT
        assert amount.raw_amount == 0
        assert amount.decimals == 6

    @pytest.mark.asyncio
    async def test_unknown_mint_is_zero_without_decimals(self, balance_service, chain):
        amount = await balance_service.get_balance(WALLET, UNKNOWN_MINT)

        assert amount.raw_amount == 0
        assert amount.decimals == 0
        assert balance_to_dict(WALLET, amount)["display_amount"] == "0"

    @pytest.mark.asyncio
    async def test_wrapped_sol_mint_reads_token_account(self, balance_service, chain):
        chain.native_balances[WALLET] = 5_000_000_000
        chain.token_balances[(WALLET, SOL_MINT)] = TokenBalance(raw_amount=1_000, decimals=9)

        amount = await balance_service.get_balance(WALLET, SOL_MINT)

        assert amount.mint == SOL_MINT
        assert amount.raw_amount == 1_000
