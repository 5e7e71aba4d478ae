"""Pytest configuration and fixtures."""

import base64
import os
from decimal import Decimal
from typing import Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

# Set test environment
os.environ["SOLANA_NETWORK"] = "devnet"
os.environ["DEBUG"] = "true"
os.environ.pop("SOLANA_PRIVATE_KEY", None)
os.environ.pop("SOLANA_KEYPAIR_PATH", None)

from jupiter_mcp.chain.base import (
    ChainClient,
    SignatureStatus,
    TokenBalance,
    TransactionReceipt,
    TransactionStatus,
)
from jupiter_mcp.config import Settings, SolanaNetwork
from jupiter_mcp.errors import NoRouteError
from jupiter_mcp.routing.base import QuoteClient, QuoteRequest, SwapQuote
from jupiter_mcp.services.balance_service import BalanceService
from jupiter_mcp.signing.signer import Signer
from jupiter_mcp.swap.executor import RetryPolicy, SwapExecutor
from jupiter_mcp.tokens import SOL_MINT, USDC_MINT

WALLET = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"


def make_unsigned_transaction(payer: Pubkey, blockhash: Optional[Hash] = None) -> str:
    """Base64 unsigned v0 transaction with one transfer, as an aggregator returns it."""
    instruction = transfer(
        TransferParams(from_pubkey=payer, to_pubkey=Pubkey.new_unique(), lamports=1_000)
    )
    message = MessageV0.try_compile(payer, [instruction], [], blockhash or Hash.default())
    transaction = VersionedTransaction.populate(message, [Signature.default()])
    return base64.b64encode(bytes(transaction)).decode()


class FakeQuoteClient(QuoteClient):
    """Scripted aggregator: each call pops the next outcome."""

    def __init__(self, outcomes=None, taker_transaction: Optional[str] = None):
        self.outcomes = list(outcomes or [])
        self.taker_transaction = taker_transaction
        self.requests: list[QuoteRequest] = []
        self.quotes: list[SwapQuote] = []

    @property
    def name(self) -> str:
        return "Fake"

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def get_quote(self, request: QuoteRequest) -> SwapQuote:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if self.outcomes else 1_000_000
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            raise NoRouteError(f"No route found for {request.input_mint} -> {request.output_mint}")
        quote = SwapQuote(
            input_mint=request.input_mint,
            output_mint=request.output_mint,
            input_amount=request.amount,
            output_amount=outcome,
            min_output_amount=outcome * (10_000 - request.slippage_bps) // 10_000,
            slippage_bps=request.slippage_bps,
            price_impact_pct=Decimal("0.01"),
            route_id=f"route-{len(self.requests)}",
            route_labels=("Orca",),
            unsigned_transaction=self.taker_transaction if request.taker else None,
        )
        self.quotes.append(quote)
        return quote


class FakeChainClient(ChainClient):
    """In-memory chain with scripted submit and status outcomes."""

    def __init__(self):
        self.native_balances: dict[str, int] = {}
        self.token_balances: dict[tuple[str, str], TokenBalance] = {}
        self.mint_decimals: dict[str, int] = {USDC_MINT: 6, SOL_MINT: 9}
        self.submit_outcomes: list = []
        self.status_outcomes: list = []
        self.default_status = SignatureStatus(TransactionStatus.CONFIRMED)
        self.receipt: Optional[TransactionReceipt] = TransactionReceipt(fee_lamports=5_000)
        self.submitted: list[bytes] = []
        self.receipt_owners: list[str] = []
        self.status_calls = 0
        self.read_calls = 0

    @property
    def calls(self) -> int:
        return self.read_calls + len(self.submitted) + self.status_calls

    async def get_native_balance(self, owner: str) -> int:
        self.read_calls += 1
        return self.native_balances.get(owner, 0)

    async def get_token_balance(self, owner: str, mint: str) -> Optional[TokenBalance]:
        self.read_calls += 1
        return self.token_balances.get((owner, mint))

    async def get_mint_decimals(self, mint: str) -> Optional[int]:
        self.read_calls += 1
        return self.mint_decimals.get(mint)

    async def submit_transaction(self, payload: bytes) -> str:
        self.submitted.append(payload)
        outcome = self.submit_outcomes.pop(0) if self.submit_outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        return str(VersionedTransaction.from_bytes(payload).signatures[0])

    async def get_signature_status(self, signature: str) -> SignatureStatus:
        self.status_calls += 1
        outcome = self.status_outcomes.pop(0) if self.status_outcomes else self.default_status
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def get_transaction_receipt(self, signature: str, owner: str) -> Optional[TransactionReceipt]:
        self.receipt_owners.append(owner)
        return self.receipt


@pytest.fixture
def settings() -> Settings:
    """Settings with millisecond delays."""
    return Settings(
        _env_file=None,
        solana_network="devnet",
        default_slippage_bps=50,
        quote_max_attempts=3,
        submit_max_attempts=3,
        retry_backoff_base=0.001,
        retry_backoff_max=0.004,
        confirm_poll_interval=0.001,
        confirm_timeout=0.05,
    )


@pytest.fixture
def keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def signer(keypair) -> Signer:
    return Signer(keypair)


@pytest.fixture
def unsigned_tx(keypair) -> str:
    return make_unsigned_transaction(keypair.pubkey())


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def quote_client(unsigned_tx) -> FakeQuoteClient:
    return FakeQuoteClient(taker_transaction=unsigned_tx)


@pytest.fixture
def executor(quote_client, chain, signer) -> SwapExecutor:
    policy = RetryPolicy(max_attempts=3, base_delay=0.001, max_delay=0.004)
    return SwapExecutor(
        quote_client=quote_client,
        chain=chain,
        signer=signer,
        quote_policy=policy,
        submit_policy=policy,
        confirm_poll_interval=0.001,
        confirm_timeout=0.05,
        network=SolanaNetwork.DEVNET,
    )


@pytest.fixture
def balance_service(chain) -> BalanceService:
    return BalanceService(chain)
