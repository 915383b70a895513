"""
Request handler for the Jupiter swap endpoint.

Validates the request body, resolves the fee policy, calls the builder, and
maps the outcome to (status_code, payload).
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .cache import MemoryCache
from .config import SwapSettings
from .errors import SigningFailureError, SwapBuildError
from .fees import resolve_fee_policy
from .jupiter_client import JupiterClient
from .solana_client import SolanaClient
from .swap_builder import SwapBuildResult, build_jupiter_swap_to_sol

logger = logging.getLogger(__name__)


@dataclass
class SwapContext:
    """Process-wide collaborators shared by every request."""
    solana: SolanaClient
    jupiter: JupiterClient
    cache: MemoryCache
    fee_payer: Keypair
    settings: SwapSettings


def _error(message: str) -> Tuple[int, Dict[str, Any]]:
    return 400, {"status": "error", "message": message}


def _parse_pubkey(value: Any) -> Optional[Pubkey]:
    if not isinstance(value, str):
        return None
    try:
        return Pubkey.from_string(value)
    except ValueError:
        return None


def _parse_amount(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def serialize_result(result: SwapBuildResult) -> Dict[str, Any]:
    return {
        "status": "ok",
        "transaction": base58.b58encode(bytes(result.transaction)).decode("utf-8"),
        "quote": result.quote.raw,
        "messageToken": result.message_token,
    }


async def handle_jupiter_swap_request(
    body: Optional[Dict[str, Any]],
    context: SwapContext
) -> Tuple[int, Dict[str, Any]]:
    """
    Handle one build request.

    Body fields: user (base58), sourceMint (base58), amount (positive integer,
    number or decimal string).

    amount includes the burn fee, which is taken out before quoting. A transfer
    fee configured for sourceMint is charged on top of it, so the user's token
    account is debited amount + transfer fee in total.
    """
    body = body or {}

    user = _parse_pubkey(body.get("user"))
    if user is None:
        return _error('missing or invalid "user" parameter')
    source_mint = _parse_pubkey(body.get("sourceMint"))
    if source_mint is None:
        return _error('missing or invalid "sourceMint" parameter')
    amount = _parse_amount(body.get("amount"))
    if amount is None:
        return _error('missing or invalid "amount" parameter')

    settings = context.settings
    try:
        fee_policy = resolve_fee_policy(source_mint, settings.fee_schedule)
        result = await build_jupiter_swap_to_sol(
            context.solana,
            context.jupiter,
            context.fee_payer,
            user,
            source_mint,
            amount,
            context.cache,
            same_mint_timeout=settings.same_mint_timeout_ms,
            fee_policy=fee_policy,
            platform_fee_bps=settings.platform_fee_bps,
            slippage_bps=settings.slippage_bps,
            expected_genesis_hash=settings.expected_genesis_hash
        )
    except SigningFailureError as e:
        return _error(str(e))
    except SwapBuildError as e:
        logger.info(f"Swap build rejected for {user}: {type(e).__name__}: {e}")
        return _error(str(e))
    except Exception:
        logger.error(f"Unexpected error building swap for {user}", exc_info=True)
        return _error("Internal error while building swap transaction")

    return 200, serialize_result(result)
