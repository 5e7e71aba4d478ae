"""Abstract quote client interface for swap aggregators."""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteRequest:
    """Parameters of one quote request.

    Attributes:
        input_mint: Mint to swap from
        output_mint: Mint to swap to
        amount: Input amount in the input token's smallest unit
        slippage_bps: Max slippage in basis points (50 = 0.5%)
        taker: Wallet that will sign; when set the aggregator also
            returns an unsigned transaction
    """

    input_mint: str
    output_mint: str
    amount: int
    slippage_bps: int
    taker: Optional[str] = None


@dataclass(frozen=True)
class SwapQuote:
    """A priced route snapshot from the aggregator.

    Perishable: consumed at most once and never cached.
    """

    input_mint: str
    output_mint: str
    input_amount: int
    output_amount: int
    min_output_amount: int
    slippage_bps: int
    price_impact_pct: Decimal
    route_id: str
    route_labels: tuple[str, ...] = ()
    unsigned_transaction: Optional[str] = None  # base64, None without taker
    last_valid_block_height: Optional[int] = None
    aggregator_message: Optional[str] = None
    timestamp: float = field(default_factory=time.time)

    @property
    def age_seconds(self) -> float:
        return time.time() - self.timestamp

    @property
    def route_description(self) -> str:
        return " -> ".join(self.route_labels) or "direct"

    def to_dict(self) -> dict:
        """Tool payload for get_quote."""
        return {
            "input_mint": self.input_mint,
            "output_mint": self.output_mint,
            "input_amount": str(self.input_amount),
            "output_amount": str(self.output_amount),
            "min_output_amount": str(self.min_output_amount),
            "price_impact_pct": str(self.price_impact_pct),
            "slippage_bps": self.slippage_bps,
            "route_id": self.route_id,
            "route_labels": list(self.route_labels),
        }


class QuoteClient(ABC):
    """Abstract base class for swap aggregators.

    Implementations raise NoRouteError when no path exists and
    TransientNetworkError for retryable transport failures.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Aggregator name."""
        pass

    @abstractmethod
    async def get_quote(self, request: QuoteRequest) -> SwapQuote:
        """Issue one quote request to the aggregator."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
