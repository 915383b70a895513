"""
Typed failures raised while building a sponsored swap transaction.

Every error carries a human-readable message that the request handler
returns to the client, except SigningFailureError whose message is generic.
"""


class SwapBuildError(Exception):
    """Base class for all swap build failures (mapped to HTTP 400)."""


class InvalidInputError(SwapBuildError):
    """Malformed address or non-positive amount."""


class LedgerError(SwapBuildError):
    """RPC request to the ledger failed or returned no value."""


class WrongClusterError(SwapBuildError):
    """RPC endpoint is attached to an unexpected cluster."""


class InvalidFeeConfigError(SwapBuildError):
    """Configured token fee is negative."""


class RateLimitedError(SwapBuildError):
    """Same user and mint requested again inside the throttle window."""


class AccountExistsError(SwapBuildError):
    """User's wrapped SOL account already exists on-chain."""


class RoutingFailureError(SwapBuildError):
    """Jupiter returned an error or an undecodable instruction bundle."""


class SimulationFailureError(SwapBuildError):
    """Pre-flight simulation rejected the assembled transaction."""

    def __init__(self, message: str, logs=None):
        super().__init__(message)
        self.logs = list(logs or [])


class SigningFailureError(SwapBuildError):
    """Message token could not be produced."""

    def __init__(self, message: str = "Failed to sign message token"):
        super().__init__(message)
