"""Error taxonomy shared by every layer.

Adapters translate library exceptions into these kinds; the dispatcher turns
them into structured tool errors. `category` tells automated callers whether
retrying is safe.
"""

from typing import Optional


class JupiterMcpError(Exception):
    """Base exception for all classified failures."""

    kind = "InternalError"
    category = "permanent"
    retryable = False

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        """Wire representation."""
        return {
            "kind": self.kind,
            "message": self.message,
            "retryable": self.retryable,
            "category": self.category,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


class ValidationError(JupiterMcpError):
    """Malformed or missing request arguments."""

    kind = "ValidationError"
    category = "validation"


class NoRouteError(JupiterMcpError):
    """The aggregator found no viable swap path."""

    kind = "NoRouteError"


class TransientNetworkError(JupiterMcpError):
    """RPC node or aggregator unreachable or timed out."""

    kind = "TransientNetworkError"
    category = "retryable"
    retryable = True

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        maybe_delivered: bool = False,
    ):
        super().__init__(message, details)
        # Set on submit failures where the request may have reached the node
        self.maybe_delivered = maybe_delivered


class RetriesExhaustedError(TransientNetworkError):
    """Transient failures persisted past the retry budget of a stage."""

    def __init__(self, stage: str, attempts: int, last_error: Exception):
        super().__init__(
            f"{stage} failed after {attempts} attempts: {last_error}",
            details={"stage": stage, "attempts": attempts, "exhausted": True},
        )
        self.stage = stage
        self.attempts = attempts
        self.last_error = last_error


class BuildError(JupiterMcpError):
    """Aggregator transaction payload missing or malformed."""

    kind = "BuildError"


class SigningError(JupiterMcpError):
    """Transaction could not be signed with the held key."""

    kind = "SigningError"


class RejectedError(JupiterMcpError):
    """The network refused the transaction at submission."""

    kind = "RejectedError"


class OnChainFailureError(JupiterMcpError):
    """Transaction landed but reverted; fees were still charged."""

    kind = "OnChainFailureError"


class IndeterminateError(JupiterMcpError):
    """Confirmation polling ended without a definitive status."""

    kind = "IndeterminateError"
    category = "indeterminate"


class ConfigurationError(JupiterMcpError):
    """Missing or invalid startup configuration."""

    kind = "ConfigurationError"
