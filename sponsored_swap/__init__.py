"""
Sponsored Jupiter swap-to-SOL transaction builder.
"""
from .errors import (
    AccountExistsError,
    InvalidFeeConfigError,
    InvalidInputError,
    LedgerError,
    RateLimitedError,
    RoutingFailureError,
    SigningFailureError,
    SimulationFailureError,
    SwapBuildError,
    WrongClusterError,
)
from .message_token import JUPITER_SWAP_TOKEN_KEY, MessageToken
from .swap_builder import SwapBuildResult, build_jupiter_swap_to_sol
