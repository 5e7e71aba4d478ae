"""Swap execution pipeline.

Turns a swap intent into one signed, submitted and confirmed transaction:

    FETCH_QUOTE -> BUILD_TX -> SIGN -> SUBMIT -> CONFIRMING -> SUCCEEDED

Retries are bounded loops per stage. Only FETCH_QUOTE is retried as a whole,
and every attempt fetches a fresh quote. Once a transaction may have reached
the network the pipeline only polls for its outcome: it never signs or
submits a second transaction for the same swap.
"""

import asyncio
import base64
import binascii
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from solders.transaction import VersionedTransaction

from jupiter_mcp.chain.base import ChainClient, TransactionReceipt, TransactionStatus
from jupiter_mcp.config import Settings, SolanaNetwork
from jupiter_mcp.errors import (
    BuildError,
    IndeterminateError,
    JupiterMcpError,
    NoRouteError,
    OnChainFailureError,
    RejectedError,
    RetriesExhaustedError,
    SigningError,
    TransientNetworkError,
)
from jupiter_mcp.routing.base import QuoteClient, QuoteRequest, SwapQuote
from jupiter_mcp.signing.signer import SignedTransaction, Signer
from jupiter_mcp.tokens import SOL_MINT
from jupiter_mcp.utils import get_explorer_url

logger = logging.getLogger(__name__)


class SwapStage(str, Enum):
    """Pipeline states; FAILED_* and SUCCEEDED are terminal."""

    FETCH_QUOTE = "FETCH_QUOTE"
    BUILD_TX = "BUILD_TX"
    SIGN = "SIGN"
    SUBMIT = "SUBMIT"
    CONFIRMING = "CONFIRMING"
    SUCCEEDED = "SUCCEEDED"
    FAILED_NO_ROUTE = "FAILED_NO_ROUTE"
    FAILED_QUOTE = "FAILED_QUOTE"
    FAILED_BUILD = "FAILED_BUILD"
    FAILED_SIGN = "FAILED_SIGN"
    FAILED_SUBMIT = "FAILED_SUBMIT"
    FAILED_REJECTED = "FAILED_REJECTED"
    FAILED_ON_CHAIN = "FAILED_ON_CHAIN"
    FAILED_UNKNOWN = "FAILED_UNKNOWN"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff."""

    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 4.0

    def delay(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (0-based)."""
        return min(self.base_delay * (2 ** attempt), self.max_delay)


@dataclass(frozen=True)
class SwapRequest:
    """A validated swap intent."""

    input_mint: str
    output_mint: str
    amount: int
    slippage_bps: int


@dataclass(frozen=True)
class SwapResult:
    """Terminal outcome of one pipeline invocation."""

    stage: SwapStage
    input_mint: str
    output_mint: str
    input_amount: int
    signature: Optional[str] = None
    output_amount: Optional[int] = None
    output_amount_source: Optional[str] = None  # "on_chain" or "quoted"
    quoted_output_amount: Optional[int] = None
    fee_lamports: Optional[int] = None
    slot: Optional[int] = None
    explorer_url: Optional[str] = None
    quote_attempts: int = 0
    submit_attempts: int = 0
    error: Optional[JupiterMcpError] = None

    @property
    def succeeded(self) -> bool:
        return self.stage == SwapStage.SUCCEEDED

    def to_dict(self) -> dict:
        """Tool payload for a successful execute_swap."""
        return {
            "status": self.stage.value,
            "transaction_signature": self.signature,
            "input_mint": self.input_mint,
            "output_mint": self.output_mint,
            "input_amount": str(self.input_amount),
            "output_amount": str(self.output_amount) if self.output_amount is not None else None,
            "output_amount_source": self.output_amount_source,
            "quoted_output_amount": (
                str(self.quoted_output_amount) if self.quoted_output_amount is not None else None
            ),
            "fee_lamports": self.fee_lamports,
            "slot": self.slot,
            "explorer_url": self.explorer_url,
        }


def build_transaction(quote: SwapQuote) -> VersionedTransaction:
    """Deserialize the aggregator's unsigned transaction.

    Raises:
        BuildError: If the payload is missing or malformed
    """
    if not quote.unsigned_transaction:
        reason = quote.aggregator_message or "no transaction in aggregator response"
        raise BuildError(f"Cannot build swap transaction: {reason}")

    try:
        raw = base64.b64decode(quote.unsigned_transaction, validate=True)
    except (binascii.Error, ValueError) as e:
        raise BuildError(f"Swap transaction is not valid base64: {e}")

    try:
        return VersionedTransaction.from_bytes(raw)
    except Exception as e:
        raise BuildError(f"Failed to deserialize swap transaction: {e}")


def actual_output_amount(receipt: TransactionReceipt, output_mint: str) -> Optional[int]:
    """Output received by the wallet according to its receipt deltas."""
    if output_mint == SOL_MINT:
        # SOL is unwrapped into lamports; the fee came out of the same balance
        delta = receipt.native_delta + receipt.fee_lamports
    else:
        delta = receipt.token_deltas.get(output_mint, 0)
    return delta if delta > 0 else None


class SwapExecutor:
    """Executes swaps through the aggregator with the process wallet."""

    def __init__(
        self,
        quote_client: QuoteClient,
        chain: ChainClient,
        signer: Signer,
        quote_policy: RetryPolicy = RetryPolicy(),
        submit_policy: RetryPolicy = RetryPolicy(),
        confirm_poll_interval: float = 2.0,
        confirm_timeout: float = 60.0,
        network: Optional[SolanaNetwork] = None,
    ):
        self.quote_client = quote_client
        self.chain = chain
        self.signer = signer
        self.quote_policy = quote_policy
        self.submit_policy = submit_policy
        self.confirm_poll_interval = confirm_poll_interval
        self.confirm_timeout = confirm_timeout
        self.network = network

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        quote_client: QuoteClient,
        chain: ChainClient,
        signer: Signer,
    ) -> "SwapExecutor":
        return cls(
            quote_client=quote_client,
            chain=chain,
            signer=signer,
            quote_policy=RetryPolicy(
                settings.quote_max_attempts, settings.retry_backoff_base, settings.retry_backoff_max
            ),
            submit_policy=RetryPolicy(
                settings.submit_max_attempts, settings.retry_backoff_base, settings.retry_backoff_max
            ),
            confirm_poll_interval=settings.confirm_poll_interval,
            confirm_timeout=settings.confirm_timeout,
            network=settings.network,
        )

    async def get_quote(self, request: SwapRequest) -> SwapQuote:
        """Single read-only quote (no taker, no transaction)."""
        return await self.quote_client.get_quote(
            QuoteRequest(
                input_mint=request.input_mint,
                output_mint=request.output_mint,
                amount=request.amount,
                slippage_bps=request.slippage_bps,
            )
        )

    async def execute_swap(self, request: SwapRequest) -> SwapResult:
        """Run the pipeline to a terminal state.

        Returns:
            SwapResult; `error` is set for every FAILED_* stage
        """
        result = SwapResult(
            stage=SwapStage.FETCH_QUOTE,
            input_mint=request.input_mint,
            output_mint=request.output_mint,
            input_amount=request.amount,
        )
        logger.info(
            f"Executing swap: {request.amount} {request.input_mint} -> {request.output_mint} "
            f"(slippage {request.slippage_bps} bps)"
        )

        # FETCH_QUOTE: fresh quote per attempt
        quote, result = await self._fetch_quote(request, result)
        if quote is None:
            return result

        # BUILD_TX
        result = replace(result, stage=SwapStage.BUILD_TX, quoted_output_amount=quote.output_amount)
        logger.debug(
            f"Building transaction from quote {quote.route_id} ({quote.age_seconds:.2f}s old, "
            f"valid until block {quote.last_valid_block_height or 'unknown'})"
        )
        try:
            transaction = build_transaction(quote)
        except BuildError as e:
            return self._fail(result, SwapStage.FAILED_BUILD, e)

        # SIGN
        result = replace(result, stage=SwapStage.SIGN)
        try:
            signed = self.signer.sign(transaction)
        except SigningError as e:
            return self._fail(result, SwapStage.FAILED_SIGN, e)
        except Exception as e:
            return self._fail(result, SwapStage.FAILED_SIGN, SigningError(f"Signing failed: {e}"))

        result = replace(
            result,
            stage=SwapStage.SUBMIT,
            signature=signed.signature,
            explorer_url=get_explorer_url(signed.signature, self.network),
        )

        try:
            result = await self._submit(signed, result)
            if result.stage != SwapStage.CONFIRMING:
                return result
            return await self._confirm(signed.signature, request, result)
        except asyncio.CancelledError:
            # Local abandonment only; the broadcast transaction may still land
            logger.warning(
                f"Swap call cancelled during {result.stage.value}; "
                f"transaction {signed.signature} may still land on-chain"
            )
            raise

    async def _fetch_quote(
        self, request: SwapRequest, result: SwapResult
    ) -> tuple[Optional[SwapQuote], SwapResult]:
        quote_request = QuoteRequest(
            input_mint=request.input_mint,
            output_mint=request.output_mint,
            amount=request.amount,
            slippage_bps=request.slippage_bps,
            taker=self.signer.pubkey,
        )
        attempts = 0
        while True:
            attempts += 1
            result = replace(result, quote_attempts=attempts)
            try:
                quote = await self.quote_client.get_quote(quote_request)
            except NoRouteError as e:
                return None, self._fail(result, SwapStage.FAILED_NO_ROUTE, e)
            except TransientNetworkError as e:
                if attempts >= self.quote_policy.max_attempts:
                    error = RetriesExhaustedError(SwapStage.FETCH_QUOTE.value, attempts, e)
                    return None, self._fail(result, SwapStage.FAILED_QUOTE, error)
                delay = self.quote_policy.delay(attempts - 1)
                logger.warning(f"Quote attempt {attempts} failed: {e}; retrying in {delay:.2f}s")
                await asyncio.sleep(delay)
                continue

            logger.info(
                f"Quote {quote.route_id or '-'}: {quote.input_amount} -> {quote.output_amount} "
                f"via {quote.route_description} (impact {quote.price_impact_pct}%)"
            )
            return quote, result

    async def _submit(self, signed: SignedTransaction, result: SwapResult) -> SwapResult:
        attempts = 0
        while True:
            attempts += 1
            result = replace(result, submit_attempts=attempts)
            try:
                acknowledged = await self.chain.submit_transaction(signed.payload)
            except RejectedError as e:
                return self._fail(result, SwapStage.FAILED_REJECTED, e)
            except TransientNetworkError as e:
                if e.maybe_delivered:
                    logger.warning(
                        f"Submit of {signed.signature} ended ambiguously ({e}); "
                        "polling for the outcome instead of resubmitting"
                    )
                    return replace(result, stage=SwapStage.CONFIRMING)
                if attempts >= self.submit_policy.max_attempts:
                    error = RetriesExhaustedError(SwapStage.SUBMIT.value, attempts, e)
                    return self._fail(result, SwapStage.FAILED_SUBMIT, error)
                delay = self.submit_policy.delay(attempts - 1)
                logger.warning(
                    f"Submit attempt {attempts} never reached the node ({e}); "
                    f"resending the same transaction in {delay:.2f}s"
                )
                await asyncio.sleep(delay)
                continue

            if acknowledged != signed.signature:
                logger.warning(f"Node acknowledged {acknowledged}, expected {signed.signature}")
            logger.info(f"Transaction {signed.signature} accepted by node")
            return replace(result, stage=SwapStage.CONFIRMING)

    async def _confirm(self, signature: str, request: SwapRequest, result: SwapResult) -> SwapResult:
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + self.confirm_timeout
        polls = 0

        while True:
            polls += 1
            remaining = deadline - loop.time()
            status = None
            try:
                status = await asyncio.wait_for(
                    self.chain.get_signature_status(signature),
                    timeout=max(remaining, 0.001),
                )
            except (TransientNetworkError, asyncio.TimeoutError) as e:
                logger.debug(f"Status poll {polls} for {signature} gave no answer: {e!r}")

            if status is not None and status.status == TransactionStatus.CONFIRMED:
                return await self._succeed(signature, request, replace(result, slot=status.slot))

            if status is not None and status.status == TransactionStatus.FAILED:
                receipt = await self._receipt(signature)
                fee = receipt.fee_lamports if receipt else None
                error = OnChainFailureError(
                    f"Transaction {signature} landed but failed: {status.error}. "
                    "Network fees were still charged.",
                    {
                        "signature": signature,
                        "on_chain_error": status.error,
                        "slot": status.slot,
                        "fee_lamports": fee,
                        "fees_charged": True,
                        "explorer_url": result.explorer_url,
                    },
                )
                return self._fail(
                    replace(result, fee_lamports=fee, slot=status.slot), SwapStage.FAILED_ON_CHAIN, error
                )

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(self.confirm_poll_interval, remaining))

        elapsed = loop.time() - started
        error = IndeterminateError(
            f"Transaction {signature} was not confirmed within {self.confirm_timeout:.0f}s. "
            "Its outcome is unknown: check the signature before retrying the swap.",
            {
                "signature": signature,
                "explorer_url": result.explorer_url,
                "elapsed_seconds": round(elapsed, 3),
                "polls": polls,
            },
        )
        return self._fail(result, SwapStage.FAILED_UNKNOWN, error)

    async def _succeed(self, signature: str, request: SwapRequest, result: SwapResult) -> SwapResult:
        receipt = await self._receipt(signature)
        output = actual_output_amount(receipt, request.output_mint) if receipt else None
        source = "on_chain"
        if output is None:
            output = result.quoted_output_amount
            source = "quoted"

        logger.info(f"Swap confirmed: {signature} in slot {result.slot} ({output} out, {source})")
        return replace(
            result,
            stage=SwapStage.SUCCEEDED,
            output_amount=output,
            output_amount_source=source,
            fee_lamports=receipt.fee_lamports if receipt else None,
        )

    async def _receipt(self, signature: str) -> Optional[TransactionReceipt]:
        try:
            return await self.chain.get_transaction_receipt(signature, self.signer.pubkey)
        except TransientNetworkError as e:
            logger.warning(f"Receipt for {signature} unavailable: {e}")
            return None

    @staticmethod
    def _fail(result: SwapResult, stage: SwapStage, error: JupiterMcpError) -> SwapResult:
        error.details["terminal_state"] = stage.value
        if result.signature:
            error.details.setdefault("signature", result.signature)
        logger.error(f"Swap failed at {stage.value}: {error.kind}: {error.message}")
        return replace(result, stage=stage, error=error)
