"""Transaction signer holding the process wallet key.

The keypair is loaded once at startup and never changes. Signing is a pure
function of key and message, so concurrent calls need no locking.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import base58
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from jupiter_mcp.config import Settings
from jupiter_mcp.errors import ConfigurationError, SigningError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedTransaction:
    """Serialized signed transaction and its identifier."""

    payload: bytes
    signature: str


def _keypair_from_bytes(raw: bytes) -> Keypair:
    if len(raw) == 64:
        return Keypair.from_bytes(raw)
    if len(raw) == 32:
        return Keypair.from_seed(raw)
    raise ConfigurationError(f"Invalid private key length: {len(raw)} bytes (expected 64 or 32)")


def load_keypair(
    private_key: Optional[str] = None,
    keypair_path: Optional[str] = None,
) -> Keypair:
    """Load a keypair from a base58 string, a JSON byte array or a keypair file.

    Raises:
        ConfigurationError: If no key is configured or it cannot be decoded
    """
    if private_key:
        source = "SOLANA_PRIVATE_KEY"
        text = private_key.strip()
    elif keypair_path:
        source = f"keypair file {keypair_path}"
        try:
            text = Path(keypair_path).expanduser().read_text().strip()
        except OSError as e:
            raise ConfigurationError(f"Cannot read {source}: {e}")
    else:
        raise ConfigurationError(
            "SOLANA_PRIVATE_KEY (or SOLANA_KEYPAIR_PATH) environment variable is required"
        )

    try:
        if text.startswith("["):
            raw = bytes(json.loads(text))
        else:
            raw = base58.b58decode(text)
        return _keypair_from_bytes(raw)
    except ConfigurationError:
        raise
    except (ValueError, TypeError) as e:
        raise ConfigurationError(f"Invalid private key format in {source}: {e}")


class Signer:
    """Signs aggregator-built transactions with the wallet keypair."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @classmethod
    def from_settings(cls, settings: Settings) -> "Signer":
        """Create the signer from configuration (fatal if key is missing)."""
        keypair = load_keypair(settings.solana_private_key, settings.solana_keypair_path)
        signer = cls(keypair)
        logger.info(f"Loaded wallet {signer.pubkey}")
        return signer

    @property
    def pubkey(self) -> str:
        """Wallet public key (base58)."""
        return str(self._keypair.pubkey())

    def sign(self, transaction: VersionedTransaction) -> SignedTransaction:
        """Sign a transaction that awaits this wallet's signature.

        Other signatures already present on the transaction are kept.

        Raises:
            SigningError: If the wallet is not a required signer
        """
        message = transaction.message
        required = message.header.num_required_signatures
        signer_keys = list(message.account_keys[:required])
        own_key = self._keypair.pubkey()

        if own_key not in signer_keys:
            raise SigningError(
                f"Wallet {own_key} is not a required signer of the transaction"
            )

        signature = self._keypair.sign_message(to_bytes_versioned(message))
        signatures = list(transaction.signatures)
        if len(signatures) < required:
            signatures += [Signature.default()] * (required - len(signatures))
        signatures[signer_keys.index(own_key)] = signature

        signed = VersionedTransaction.populate(message, signatures)
        return SignedTransaction(payload=bytes(signed), signature=str(signature))
