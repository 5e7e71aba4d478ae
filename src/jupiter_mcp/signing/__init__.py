"""Transaction signing with the process wallet key."""

from jupiter_mcp.signing.signer import SignedTransaction, Signer, load_keypair

__all__ = ["SignedTransaction", "Signer", "load_keypair"]
