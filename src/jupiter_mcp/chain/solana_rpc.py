"""Solana RPC chain client.

Wraps solana-py's AsyncClient. One client instance (one HTTP connection pool)
is shared by all concurrent tool calls.
"""

import logging
from typing import Optional

import httpx
from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.signature import Signature
from solders.transaction_status import TransactionConfirmationStatus

from jupiter_mcp.chain.base import (
    ChainClient,
    SignatureStatus,
    TokenBalance,
    TransactionReceipt,
    TransactionStatus,
)
from jupiter_mcp.errors import RejectedError, TransientNetworkError, ValidationError
from jupiter_mcp.utils import parse_pubkey

logger = logging.getLogger(__name__)

# Transport failures raised before any byte reached the node
UNDELIVERED_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


def _is_undelivered(exc: BaseException) -> bool:
    cause = exc.__cause__ if isinstance(exc, SolanaRpcException) else exc
    return isinstance(cause, UNDELIVERED_ERRORS)


def _confirmation_rank(status) -> int:
    if status == TransactionConfirmationStatus.Finalized:
        return 2
    if status == TransactionConfirmationStatus.Confirmed:
        return 1
    return 0


COMMITMENT_RANK = {"processed": 0, "confirmed": 1, "finalized": 2}


def _read_error(method: str, exc: RPCException) -> Exception:
    """Invalid params are permanent for the request; other node errors may clear up."""
    if "invalid param" in str(exc).lower():
        return ValidationError(f"RPC {method} rejected the request: {exc}")
    return TransientNetworkError(f"RPC {method} error: {exc}")


class SolanaRpcClient(ChainClient):
    """Chain client backed by a Solana JSON-RPC node."""

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "confirmed",
        timeout: float = 15.0,
        client: Optional[AsyncClient] = None,
    ):
        """Initialize the RPC client.

        Args:
            rpc_url: JSON-RPC endpoint
            commitment: Commitment used for reads, preflight and confirmation
            timeout: Per-request timeout in seconds
            client: Preconfigured AsyncClient (tests)
        """
        self.rpc_url = rpc_url
        self.commitment = commitment
        self._client = client or AsyncClient(rpc_url, commitment=commitment, timeout=timeout)

    async def close(self) -> None:
        await self._client.close()

    async def get_native_balance(self, owner: str) -> int:
        pubkey = parse_pubkey(owner, "wallet_address")
        try:
            resp = await self._client.get_balance(pubkey)
        except (SolanaRpcException, httpx.HTTPError) as e:
            raise TransientNetworkError(f"RPC getBalance failed: {e}")
        except RPCException as e:
            raise TransientNetworkError(f"RPC getBalance error: {e}")
        return int(resp.value)

    async def get_token_balance(self, owner: str, mint: str) -> Optional[TokenBalance]:
        owner_key = parse_pubkey(owner, "wallet_address")
        mint_key = parse_pubkey(mint, "token_mint")
        try:
            resp = await self._client.get_token_accounts_by_owner_json_parsed(
                owner_key, TokenAccountOpts(mint=mint_key)
            )
        except (SolanaRpcException, httpx.HTTPError) as e:
            raise TransientNetworkError(f"RPC getTokenAccountsByOwner failed: {e}")
        except RPCException as e:
            # Node answers "could not find mint" for unknown mints
            if "could not find mint" in str(e).lower():
                return None
            raise _read_error("getTokenAccountsByOwner", e)

        accounts = resp.value or []
        if not accounts:
            return None

        total = 0
        decimals = 0
        for keyed in accounts:
            try:
                token_amount = keyed.account.data.parsed["info"]["tokenAmount"]
                total += int(token_amount["amount"])
                decimals = int(token_amount["decimals"])
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise ValidationError(f"{mint} is not an SPL token mint: {e}")

        return TokenBalance(raw_amount=total, decimals=decimals, account_count=len(accounts))

    async def get_mint_decimals(self, mint: str) -> Optional[int]:
        mint_key = parse_pubkey(mint, "token_mint")
        try:
            resp = await self._client.get_account_info_json_parsed(mint_key)
        except (SolanaRpcException, httpx.HTTPError) as e:
            raise TransientNetworkError(f"RPC getAccountInfo failed: {e}")
        except RPCException as e:
            raise _read_error("getAccountInfo", e)

        account = resp.value
        if account is None:
            return None
        try:
            return int(account.data.parsed["info"]["decimals"])
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.debug(f"Account {mint} is not a parsed mint account")
            return None

    async def submit_transaction(self, payload: bytes) -> str:
        opts = TxOpts(
            skip_confirmation=True,
            skip_preflight=False,
            preflight_commitment=self.commitment,
        )
        try:
            resp = await self._client.send_raw_transaction(payload, opts=opts)
        except RPCException as e:
            # Preflight simulation failure, insufficient funds, slippage exceeded...
            raise RejectedError(f"Transaction rejected by node: {e}")
        except (SolanaRpcException, httpx.HTTPError) as e:
            undelivered = _is_undelivered(e)
            raise TransientNetworkError(
                f"RPC sendTransaction failed: {e}",
                maybe_delivered=not undelivered,
            )
        return str(resp.value)

    async def get_signature_status(self, signature: str) -> SignatureStatus:
        try:
            resp = await self._client.get_signature_statuses([Signature.from_string(signature)])
        except (SolanaRpcException, httpx.HTTPError) as e:
            raise TransientNetworkError(f"RPC getSignatureStatuses failed: {e}")
        except RPCException as e:
            raise TransientNetworkError(f"RPC getSignatureStatuses error: {e}")

        status = resp.value[0] if resp.value else None
        if status is None:
            return SignatureStatus(TransactionStatus.PENDING)
        if status.err is not None:
            return SignatureStatus(TransactionStatus.FAILED, error=str(status.err), slot=status.slot)
        if _confirmation_rank(status.confirmation_status) >= COMMITMENT_RANK[self.commitment]:
            return SignatureStatus(TransactionStatus.CONFIRMED, slot=status.slot)
        return SignatureStatus(TransactionStatus.PENDING, slot=status.slot)

    async def get_transaction_receipt(self, signature: str, owner: str) -> Optional[TransactionReceipt]:
        # getTransaction does not accept "processed"
        commitment = "finalized" if self.commitment == "finalized" else "confirmed"
        try:
            resp = await self._client.get_transaction(
                Signature.from_string(signature),
                encoding="json",
                commitment=commitment,
                max_supported_transaction_version=0,
            )
        except (SolanaRpcException, httpx.HTTPError, RPCException) as e:
            logger.warning(f"Could not fetch receipt for {signature}: {e}")
            return None

        if resp.value is None or resp.value.transaction.meta is None:
            return None

        meta = resp.value.transaction.meta
        native_delta = 0
        index = _account_index(resp, owner)
        if index is not None and index < min(len(meta.pre_balances or []), len(meta.post_balances or [])):
            native_delta = meta.post_balances[index] - meta.pre_balances[index]
        else:
            logger.warning(f"{owner} is not an account of {signature}")

        return TransactionReceipt(
            fee_lamports=int(meta.fee),
            native_delta=native_delta,
            token_deltas=_token_deltas(meta, owner),
            error=str(meta.err) if meta.err is not None else None,
        )


def _account_index(resp, owner: str) -> Optional[int]:
    """Position of owner among the static account keys, which index the balance lists."""
    try:
        keys = resp.value.transaction.transaction.message.account_keys
    except AttributeError:
        return None
    for index, key in enumerate(keys or []):
        if str(key) == owner:
            return index
    return None


def _token_deltas(meta, owner: str) -> dict[str, int]:
    """Per-mint token balance change of one owner."""
    deltas: dict[str, int] = {}
    for balances, sign in ((meta.pre_token_balances, -1), (meta.post_token_balances, 1)):
        for balance in balances or []:
            if balance.owner is None or str(balance.owner) != owner:
                continue
            mint = str(balance.mint)
            deltas[mint] = deltas.get(mint, 0) + sign * int(balance.ui_token_amount.amount)
    return deltas
