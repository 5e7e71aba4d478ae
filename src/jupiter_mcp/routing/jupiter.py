"""Jupiter DEX aggregator integration for Solana.

Uses the Jupiter Ultra API: one GET /order returns the best route and, when a
taker wallet is given, an unsigned swap transaction for that wallet.
API docs: https://dev.jup.ag/docs/ultra-api
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from jupiter_mcp.errors import NoRouteError, TransientNetworkError
from jupiter_mcp.routing.base import QuoteClient, QuoteRequest, SwapQuote

logger = logging.getLogger(__name__)

JUPITER_ULTRA_API = "https://lite-api.jup.ag/ultra/v1"

# Error codes Jupiter returns when no path exists
NO_ROUTE_CODES = {
    "COULD_NOT_FIND_ANY_ROUTE",
    "NO_ROUTES_FOUND",
    "TOKEN_NOT_TRADABLE",
    "ROUTE_PLAN_DOES_NOT_CONSUME_ALL_THE_AMOUNT",
}


def _error_text(data: dict) -> str:
    return str(data.get("errorMessage") or data.get("error") or data.get("message") or "")


def _is_no_route(data: dict) -> bool:
    code = str(data.get("errorCode", "")).upper()
    return code in NO_ROUTE_CODES or "route" in _error_text(data).lower()


class JupiterQuoteClient(QuoteClient):
    """Jupiter Ultra quote client.

    Jupiter aggregates liquidity from Raydium, Orca, Meteora, and other
    Solana DEXes to find the best swap rates.
    """

    def __init__(
        self,
        base_url: str = JUPITER_ULTRA_API,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize Jupiter client.

        Args:
            base_url: Ultra API base URL
            api_key: Optional API key for higher rate limits
            timeout: Request timeout in seconds
            client: Preconfigured httpx client (tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "Jupiter"

    def _get_headers(self) -> dict:
        """Get API headers."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["x-api-key"] = self.api_key
        return headers

    async def close(self) -> None:
        await self._client.aclose()

    async def get_quote(self, request: QuoteRequest) -> SwapQuote:
        """Get swap quote (and unsigned transaction when a taker is set)."""
        params = {
            "inputMint": request.input_mint,
            "outputMint": request.output_mint,
            "amount": str(request.amount),
            "slippageBps": str(request.slippage_bps),
            "swapMode": "ExactIn",
        }
        if request.taker:
            params["taker"] = request.taker

        try:
            response = await self._client.get(
                f"{self.base_url}/order",
                headers=self._get_headers(),
                params=params,
            )
        except httpx.HTTPError as e:
            raise TransientNetworkError(f"Jupiter request failed: {e.__class__.__name__}: {e}")

        if response.status_code == 429 or response.status_code >= 500:
            raise TransientNetworkError(
                f"Jupiter API error {response.status_code}",
                {"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError:
            raise TransientNetworkError(
                f"Jupiter returned a non-JSON response ({response.status_code})"
            )

        if response.status_code != 200:
            logger.warning(f"Jupiter API error: {response.status_code} - {_error_text(data)}")
            raise NoRouteError(
                f"Jupiter rejected the quote request: {_error_text(data) or response.status_code}",
                {"status_code": response.status_code, "error_code": data.get("errorCode")},
            )

        if not data.get("outAmount") or (_error_text(data) and _is_no_route(data)):
            raise NoRouteError(
                f"No route found for {request.input_mint} -> {request.output_mint}"
                + (f": {_error_text(data)}" if _error_text(data) else ""),
                {"error_code": data.get("errorCode")},
            )

        return self._parse_quote(request, data)

    def _parse_quote(self, request: QuoteRequest, data: dict) -> SwapQuote:
        try:
            out_amount = int(data["outAmount"])
            in_amount = int(data.get("inAmount", request.amount))
            min_out = int(data.get("otherAmountThreshold", out_amount))
            price_impact = Decimal(str(data.get("priceImpactPct") or "0"))
        except (TypeError, ValueError, InvalidOperation) as e:
            raise NoRouteError(f"Jupiter returned an unusable quote: {e}")

        if out_amount <= 0:
            raise NoRouteError(f"No route found for {request.input_mint} -> {request.output_mint}")

        route_plan = data.get("routePlan") or []
        labels = tuple(
            step.get("swapInfo", {}).get("label", "Unknown") for step in route_plan
        )

        transaction = data.get("transaction") or None
        if request.taker and not transaction:
            logger.warning(f"Jupiter returned no transaction: {_error_text(data) or 'no reason'}")

        return SwapQuote(
            input_mint=data.get("inputMint", request.input_mint),
            output_mint=data.get("outputMint", request.output_mint),
            input_amount=in_amount,
            output_amount=out_amount,
            min_output_amount=min_out,
            slippage_bps=int(data.get("slippageBps", request.slippage_bps)),
            price_impact_pct=price_impact,
            route_id=str(data.get("requestId") or ""),
            route_labels=labels,
            unsigned_transaction=transaction,
            last_valid_block_height=_optional_int(data.get("lastValidBlockHeight")),
            aggregator_message=_error_text(data) or None,
        )


def _optional_int(value) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None
