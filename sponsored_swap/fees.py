"""
Fee policy resolution and fee arithmetic.

All amounts are integers in the smallest unit (token base units for burn and
transfer fees, lamports for the platform fee).
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from solders.pubkey import Pubkey

from .errors import InvalidFeeConfigError

logger = logging.getLogger(__name__)

BPS_DENOMINATOR = 10_000


@dataclass(frozen=True)
class FeePolicy:
    """Fee schedule for one source mint."""
    mint: Pubkey
    fee_amount: int  # flat token fee, must be >= 0
    decimals: int
    fee_account: Pubkey  # token account receiving the transfer fee
    transfer_fee_bp: int = 0
    burn_fee_bp: int = 0


def validate_fee_policy(policy: FeePolicy) -> None:
    """
    Raises:
        InvalidFeeConfigError: If any configured fee is negative
    """
    if policy.fee_amount < 0:
        raise InvalidFeeConfigError("Fee can't be less than zero")
    if policy.transfer_fee_bp < 0 or policy.burn_fee_bp < 0:
        raise InvalidFeeConfigError(f"Fee basis points can't be negative for mint {policy.mint}")


def _policy_from_entry(entry: Dict[str, Any]) -> FeePolicy:
    try:
        policy = FeePolicy(
            mint=Pubkey.from_string(entry["mint"]),
            fee_amount=int(entry.get("fee", 0)),
            decimals=int(entry.get("decimals", 0)),
            fee_account=Pubkey.from_string(entry["account"]),
            transfer_fee_bp=int(entry.get("transferFeeBp", 0)),
            burn_fee_bp=int(entry.get("burnFeeBp", 0)),
        )
    except (KeyError, ValueError, TypeError) as e:
        raise InvalidFeeConfigError(f"Malformed fee schedule entry {entry!r}: {e}") from e
    return policy


def resolve_fee_policy(
    source_mint: Pubkey,
    fee_schedule: Iterable[Dict[str, Any]]
) -> Optional[FeePolicy]:
    """
    Find the fee policy configured for source_mint.

    Args:
        source_mint: Mint of the token being swapped
        fee_schedule: Token entries from config (mint, account, decimals, fee,
            transferFeeBp, burnFeeBp)

    Returns:
        FeePolicy or None when the mint has no configured fees

    Raises:
        InvalidFeeConfigError: If the matching entry is malformed or negative
    """
    for entry in fee_schedule:
        if entry.get("mint") != str(source_mint):
            continue
        policy = _policy_from_entry(entry)
        validate_fee_policy(policy)
        logger.debug(
            f"Fee policy for {source_mint}: burn={policy.burn_fee_bp}bp "
            f"transfer={policy.transfer_fee_bp}bp fee={policy.fee_amount}"
        )
        return policy
    return None


def basis_points_of(amount: int, bps: int) -> int:
    """Floor of amount * bps / 10000."""
    return amount * bps // BPS_DENOMINATOR


def burn_fee_for(amount: int, policy: Optional[FeePolicy]) -> int:
    if policy is None or not policy.burn_fee_bp:
        return 0
    return basis_points_of(amount, policy.burn_fee_bp)


def transfer_fee_for(amount: int, policy: Optional[FeePolicy]) -> int:
    if policy is None or not policy.transfer_fee_bp:
        return 0
    return basis_points_of(amount, policy.transfer_fee_bp)


def platform_fee_for(out_amount: int, platform_fee_bps: int) -> int:
    """Platform fee in lamports: out_amount * bps / 10000 rounded half up."""
    if platform_fee_bps <= 0:
        return 0
    return (out_amount * platform_fee_bps + BPS_DENOMINATOR // 2) // BPS_DENOMINATOR
