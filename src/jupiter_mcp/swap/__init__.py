"""Swap execution pipeline."""

from jupiter_mcp.swap.executor import (
    RetryPolicy,
    SwapExecutor,
    SwapRequest,
    SwapResult,
    SwapStage,
    build_transaction,
)

__all__ = [
    "RetryPolicy",
    "SwapExecutor",
    "SwapRequest",
    "SwapResult",
    "SwapStage",
    "build_transaction",
]
