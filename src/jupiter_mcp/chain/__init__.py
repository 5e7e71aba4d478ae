"""Blockchain RPC access."""

from jupiter_mcp.chain.base import (
    ChainClient,
    SignatureStatus,
    TokenBalance,
    TransactionReceipt,
    TransactionStatus,
)
from jupiter_mcp.chain.solana_rpc import SolanaRpcClient

__all__ = [
    "ChainClient",
    "SignatureStatus",
    "SolanaRpcClient",
    "TokenBalance",
    "TransactionReceipt",
    "TransactionStatus",
]
