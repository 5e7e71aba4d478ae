"""Tests for the Solana RPC chain client with a mocked AsyncClient."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.keypair import Keypair
from solders.transaction_status import TransactionConfirmationStatus

from conftest import WALLET
from jupiter_mcp.chain.base import TransactionStatus
from jupiter_mcp.chain.solana_rpc import SolanaRpcClient
from jupiter_mcp.errors import RejectedError, TransientNetworkError, ValidationError
from jupiter_mcp.tokens import USDC_MINT

SIGNATURE = str(Keypair().sign_message(b"swap"))
RELAYER = str(Keypair().pubkey())


def token_account(amount: str, decimals: int):
    parsed = {"info": {"tokenAmount": {"amount": amount, "decimals": decimals}}}
    return SimpleNamespace(account=SimpleNamespace(data=SimpleNamespace(parsed=parsed)))


def transport_error(cause: Exception) -> SolanaRpcException:
    error = SolanaRpcException("request failed")
    error.__cause__ = cause
    return error


@pytest.fixture
def rpc():
    return MagicMock()


@pytest.fixture
def client(rpc):
    return SolanaRpcClient("https://rpc.test", commitment="confirmed", client=rpc)


class TestReads:
    """Tests for balance reads."""

    @pytest.mark.asyncio
    async def test_native_balance(self, client, rpc):
        rpc.get_balance = AsyncMock(return_value=SimpleNamespace(value=1_000_000_000))

        assert await client.get_native_balance(WALLET) == 1_000_000_000

    @pytest.mark.asyncio
    async def test_native_balance_transport_error(self, client, rpc):
        rpc.get_balance = AsyncMock(side_effect=transport_error(httpx.ReadTimeout("timed out")))

        with pytest.raises(TransientNetworkError):
            await client.get_native_balance(WALLET)

    @pytest.mark.asyncio
    async def test_token_accounts_are_summed(self, client, rpc):
        rpc.get_token_accounts_by_owner_json_parsed = AsyncMock(
            return_value=SimpleNamespace(value=[token_account("1500000", 6), token_account("250000", 6)])
        )

        balance = await client.get_token_balance(WALLET, USDC_MINT)

        assert balance.raw_amount == 1_750_000
        assert balance.decimals == 6
        assert balance.account_count == 2

    @pytest.mark.asyncio
    async def test_no_token_account(self, client, rpc):
        rpc.get_token_accounts_by_owner_json_parsed = AsyncMock(return_value=SimpleNamespace(value=[]))

        assert await client.get_token_balance(WALLET, USDC_MINT) is None

    @pytest.mark.asyncio
    async def test_unknown_mint(self, client, rpc):
        rpc.get_token_accounts_by_owner_json_parsed = AsyncMock(
            side_effect=RPCException("Invalid param: could not find mint")
        )

        assert await client.get_token_balance(WALLET, USDC_MINT) is None

    @pytest.mark.asyncio
    async def test_account_that_is_not_a_mint(self, client, rpc):
        rpc.get_token_accounts_by_owner_json_parsed = AsyncMock(
            side_effect=RPCException("Invalid param: not a Token mint")
        )

        with pytest.raises(ValidationError):
            await client.get_token_balance(WALLET, USDC_MINT)

    @pytest.mark.asyncio
    async def test_node_error_is_transient(self, client, rpc):
        rpc.get_token_accounts_by_owner_json_parsed = AsyncMock(
            side_effect=RPCException("Node is behind by 120 slots")
        )

        with pytest.raises(TransientNetworkError):
            await client.get_token_balance(WALLET, USDC_MINT)

    @pytest.mark.asyncio
    async def test_mint_decimals(self, client, rpc):
        account = SimpleNamespace(data=SimpleNamespace(parsed={"info": {"decimals": 6}}))
        rpc.get_account_info_json_parsed = AsyncMock(return_value=SimpleNamespace(value=account))

        assert await client.get_mint_decimals(USDC_MINT) == 6

    @pytest.mark.asyncio
    async def test_missing_mint_account(self, client, rpc):
        rpc.get_account_info_json_parsed = AsyncMock(return_value=SimpleNamespace(value=None))

        assert await client.get_mint_decimals(USDC_MINT) is None


class TestSubmit:
    """Tests for submit_transaction error classification."""

    @pytest.mark.asyncio
    async def test_accepted(self, client, rpc):
        rpc.send_raw_transaction = AsyncMock(return_value=SimpleNamespace(value=SIGNATURE))

        assert await client.submit_transaction(b"signed") == SIGNATURE
        opts = rpc.send_raw_transaction.call_args.kwargs["opts"]
        assert opts.skip_preflight is False
        assert opts.skip_confirmation is True

    @pytest.mark.asyncio
    async def test_rpc_error_is_rejection(self, client, rpc):
        rpc.send_raw_transaction = AsyncMock(
            side_effect=RPCException("Transaction simulation failed: Attempt to debit an account but found no record of a prior credit.")
        )

        with pytest.raises(RejectedError):
            await client.submit_transaction(b"signed")

    @pytest.mark.asyncio
    async def test_connect_error_was_not_delivered(self, client, rpc):
        rpc.send_raw_transaction = AsyncMock(
            side_effect=transport_error(httpx.ConnectError("connection refused"))
        )

        with pytest.raises(TransientNetworkError) as exc:
            await client.submit_transaction(b"signed")
        assert exc.value.maybe_delivered is False

    @pytest.mark.asyncio
    async def test_read_timeout_may_have_been_delivered(self, client, rpc):
        rpc.send_raw_transaction = AsyncMock(
            side_effect=transport_error(httpx.ReadTimeout("timed out"))
        )

        with pytest.raises(TransientNetworkError) as exc:
            await client.submit_transaction(b"signed")
        assert exc.value.maybe_delivered is True


class TestStatus:
    """Tests for get_signature_status."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "confirmation,expected",
        [
            (TransactionConfirmationStatus.Processed, TransactionStatus.PENDING),
            (TransactionConfirmationStatus.Confirmed, TransactionStatus.CONFIRMED),
            (TransactionConfirmationStatus.Finalized, TransactionStatus.CONFIRMED),
        ],
    )
    async def test_commitment_levels(self, client, rpc, confirmation, expected):
        status = SimpleNamespace(err=None, slot=100, confirmation_status=confirmation)
        rpc.get_signature_statuses = AsyncMock(return_value=SimpleNamespace(value=[status]))

        result = await client.get_signature_status(SIGNATURE)

        assert result.status == expected
        assert result.slot == 100

    @pytest.mark.asyncio
    async def test_unknown_signature_is_pending(self, client, rpc):
        rpc.get_signature_statuses = AsyncMock(return_value=SimpleNamespace(value=[None]))

        result = await client.get_signature_status(SIGNATURE)

        assert result.status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_failed(self, client, rpc):
        status = SimpleNamespace(
            err="InstructionError(2, Custom(6001))",
            slot=100,
            confirmation_status=TransactionConfirmationStatus.Confirmed,
        )
        rpc.get_signature_statuses = AsyncMock(return_value=SimpleNamespace(value=[status]))

        result = await client.get_signature_status(SIGNATURE)

        assert result.status == TransactionStatus.FAILED
        assert "6001" in result.error


def token_balance(owner, amount):
    return SimpleNamespace(owner=owner, mint=USDC_MINT, ui_token_amount=SimpleNamespace(amount=amount))


def transaction(meta, account_keys):
    message = SimpleNamespace(account_keys=account_keys)
    return SimpleNamespace(
        value=SimpleNamespace(transaction=SimpleNamespace(meta=meta, transaction=SimpleNamespace(message=message)))
    )


class TestReceipt:
    """Tests for get_transaction_receipt."""

    @pytest.mark.asyncio
    async def test_deltas_of_wallet(self, client, rpc):
        meta = SimpleNamespace(
            fee=5_000,
            err=None,
            pre_balances=[2_000_000_000, 0],
            post_balances=[1_899_995_000, 0],
            pre_token_balances=[token_balance(WALLET, "1000000"), token_balance("other", "5")],
            post_token_balances=[token_balance(WALLET, "16234567"), token_balance("other", "0")],
        )
        rpc.get_transaction = AsyncMock(return_value=transaction(meta, [WALLET, RELAYER]))

        receipt = await client.get_transaction_receipt(SIGNATURE, WALLET)

        assert receipt.fee_lamports == 5_000
        assert receipt.native_delta == -100_005_000
        assert receipt.token_deltas == {USDC_MINT: 15_234_567}
        assert receipt.error is None

    @pytest.mark.asyncio
    async def test_not_found(self, client, rpc):
        rpc.get_transaction = AsyncMock(return_value=SimpleNamespace(value=None))

        assert await client.get_transaction_receipt(SIGNATURE, WALLET) is None

    @pytest.mark.asyncio
    async def test_fee_payer_other_than_wallet(self, client, rpc):
        meta = SimpleNamespace(
            fee=5_000,
            err=None,
            pre_balances=[1_000_000_000, 500_000_000],
            post_balances=[999_995_000, 400_000_000],
            pre_token_balances=[token_balance(RELAYER, "7"), token_balance(WALLET, "0")],
            post_token_balances=[token_balance(RELAYER, "7"), token_balance(WALLET, "15000000")],
        )
        rpc.get_transaction = AsyncMock(return_value=transaction(meta, [RELAYER, WALLET]))

        receipt = await client.get_transaction_receipt(SIGNATURE, WALLET)

        assert receipt.native_delta == -100_000_000
        assert receipt.token_deltas == {USDC_MINT: 15_000_000}

    @pytest.mark.asyncio
    async def test_wallet_not_in_transaction(self, client, rpc):
        meta = SimpleNamespace(
            fee=5_000,
            err=None,
            pre_balances=[1_000_000_000],
            post_balances=[999_995_000],
            pre_token_balances=[],
            post_token_balances=[],
        )
        rpc.get_transaction = AsyncMock(return_value=transaction(meta, [RELAYER]))

        receipt = await client.get_transaction_receipt(SIGNATURE, WALLET)

        assert receipt.native_delta == 0
        assert receipt.token_deltas == {}
