"""Application configuration using pydantic-settings.

A signing key, a target network and an RPC endpoint are supplied at startup.
The key is loaded once by the signer; it is never logged or exposed.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jupiter_mcp.errors import ConfigurationError


class SolanaNetwork(str, Enum):
    """Solana cluster the server talks to."""

    MAINNET_BETA = "mainnet-beta"
    TESTNET = "testnet"
    DEVNET = "devnet"

    @classmethod
    def parse(cls, value: str) -> "SolanaNetwork":
        """Parse a network name (case-insensitive, 'mainnet' accepted)."""
        normalized = (value or "").strip().lower()
        if normalized == "mainnet":
            normalized = "mainnet-beta"
        for network in cls:
            if network.value == normalized:
                return network
        raise ConfigurationError(
            f"Invalid network: {value}. Use 'mainnet-beta', 'testnet', or 'devnet'"
        )

    @property
    def rpc_url(self) -> str:
        """Public RPC endpoint for the cluster."""
        return {
            SolanaNetwork.MAINNET_BETA: "https://api.mainnet-beta.solana.com",
            SolanaNetwork.TESTNET: "https://api.testnet.solana.com",
            SolanaNetwork.DEVNET: "https://api.devnet.solana.com",
        }[self]

    @property
    def cluster_param(self) -> Optional[str]:
        """Explorer ?cluster= value (None for mainnet)."""
        if self is SolanaNetwork.MAINNET_BETA:
            return None
        return self.value


class Transport(str, Enum):
    """Inbound protocol transport."""

    STDIO = "stdio"
    HTTP = "http"


COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Solana
    # ======================
    solana_network: str = Field(default="devnet", description="mainnet-beta, testnet or devnet")
    solana_rpc_url: Optional[str] = Field(
        default=None, description="RPC URL (defaults to the network's public endpoint)"
    )
    solana_private_key: Optional[str] = Field(
        default=None, description="Base58 keypair or JSON byte array"
    )
    solana_keypair_path: Optional[str] = Field(
        default=None, description="Path to a Solana CLI keypair file"
    )
    solana_commitment: str = Field(default="confirmed", description="RPC commitment level")

    # ======================
    # Jupiter aggregator
    # ======================
    jupiter_api_url: str = Field(
        default="https://lite-api.jup.ag/ultra/v1", description="Jupiter Ultra API base URL"
    )
    jupiter_api_key: str = Field(default="", description="Jupiter API key (x-api-key)")
    default_slippage_bps: int = Field(default=50, description="Default slippage (0.5%)")

    # ======================
    # Timeouts and retries
    # ======================
    quote_timeout: float = Field(default=10.0, description="Aggregator request timeout (s)")
    quote_max_attempts: int = Field(default=3, description="Quote fetch attempts")
    rpc_timeout: float = Field(default=15.0, description="RPC request timeout (s)")
    submit_max_attempts: int = Field(default=3, description="Submit attempts (undelivered only)")
    retry_backoff_base: float = Field(default=0.5, description="Backoff base delay (s)")
    retry_backoff_max: float = Field(default=4.0, description="Backoff delay cap (s)")
    confirm_poll_interval: float = Field(default=2.0, description="Confirmation poll interval (s)")
    confirm_timeout: float = Field(default=60.0, description="Maximum confirmation wait (s)")

    # ======================
    # Server
    # ======================
    transport: Transport = Field(default=Transport.STDIO, description="stdio or http")
    api_host: str = Field(default="127.0.0.1", description="HTTP transport host")
    api_port: int = Field(default=8000, description="HTTP transport port")
    debug: bool = Field(default=False, description="Enable debug logging")

    @field_validator("solana_commitment")
    @classmethod
    def _check_commitment(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in COMMITMENT_LEVELS:
            raise ValueError(f"commitment must be one of {', '.join(COMMITMENT_LEVELS)}")
        return value

    @field_validator("default_slippage_bps")
    @classmethod
    def _check_slippage(cls, value: int) -> int:
        if not 0 < value <= 10_000:
            raise ValueError("default_slippage_bps must be in 1..10000")
        return value

    @property
    def network(self) -> SolanaNetwork:
        """Parsed network (raises ConfigurationError when invalid)."""
        return SolanaNetwork.parse(self.solana_network)

    @property
    def rpc_url(self) -> str:
        """Effective RPC URL."""
        return self.solana_rpc_url or self.network.rpc_url

    @property
    def has_wallet(self) -> bool:
        """Check if signing key material is configured."""
        return bool(self.solana_private_key or self.solana_keypair_path)

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "network": self.solana_network,
            "rpc_url": self.rpc_url,
            "commitment": self.solana_commitment,
            "wallet_configured": self.has_wallet,
            "jupiter": {
                "api_url": self.jupiter_api_url,
                "api_key": "***" if self.jupiter_api_key else "(not set)",
                "default_slippage_bps": self.default_slippage_bps,
            },
            "timeouts": {
                "quote": self.quote_timeout,
                "rpc": self.rpc_timeout,
                "confirm": self.confirm_timeout,
                "confirm_poll_interval": self.confirm_poll_interval,
            },
            "retries": {
                "quote_max_attempts": self.quote_max_attempts,
                "submit_max_attempts": self.submit_max_attempts,
                "backoff_base": self.retry_backoff_base,
                "backoff_max": self.retry_backoff_max,
            },
            "transport": self.transport.value,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
