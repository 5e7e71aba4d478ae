"""Swap quote providers."""

from jupiter_mcp.routing.base import QuoteClient, QuoteRequest, SwapQuote
from jupiter_mcp.routing.jupiter import JupiterQuoteClient

__all__ = ["JupiterQuoteClient", "QuoteClient", "QuoteRequest", "SwapQuote"]
