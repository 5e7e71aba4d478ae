"""Abstract chain client interface.

Read flow:   get_native_balance / get_token_balance / get_mint_decimals
Submit flow: submit_transaction -> get_signature_status (polled) -> get_transaction_receipt
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class TransactionStatus(str, Enum):
    """On-chain status of a submitted transaction."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class TokenBalance:
    """Raw balance held by an owner for one mint."""

    raw_amount: int
    decimals: int
    account_count: int = 1


@dataclass(frozen=True)
class SignatureStatus:
    """Result of one status poll."""

    status: TransactionStatus
    error: Optional[str] = None
    slot: Optional[int] = None


@dataclass(frozen=True)
class TransactionReceipt:
    """Balance effects of a landed transaction on its fee payer.

    Attributes:
        fee_lamports: Network fee charged
        native_delta: Change of the fee payer's lamports (fee included)
        token_deltas: Change of the fee payer's token balance per mint
        error: On-chain error, None on success
    """

    fee_lamports: int
    native_delta: int = 0
    token_deltas: dict[str, int] = field(default_factory=dict)
    error: Optional[str] = None


class ChainClient(ABC):
    """Abstract base class for blockchain RPC access.

    Implementations raise TransientNetworkError for transport failures and
    RejectedError when the node refuses a transaction.
    """

    @abstractmethod
    async def get_native_balance(self, owner: str) -> int:
        """Get lamport balance of an account (0 if it does not exist)."""
        pass

    @abstractmethod
    async def get_token_balance(self, owner: str, mint: str) -> Optional[TokenBalance]:
        """Get the owner's balance for a mint, or None if it has no token account."""
        pass

    @abstractmethod
    async def get_mint_decimals(self, mint: str) -> Optional[int]:
        """Get decimals of a mint, or None if the mint account does not exist."""
        pass

    @abstractmethod
    async def submit_transaction(self, payload: bytes) -> str:
        """Broadcast signed transaction bytes.

        Returns:
            Transaction signature acknowledged by the node
        """
        pass

    @abstractmethod
    async def get_signature_status(self, signature: str) -> SignatureStatus:
        """Poll the status of a transaction signature."""
        pass

    @abstractmethod
    async def get_transaction_receipt(self, signature: str, owner: str) -> Optional[TransactionReceipt]:
        """Fetch the fee and the balance deltas of owner for a landed transaction."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        pass
