"""
Builds unsigned, fee-payer-sponsored Jupiter swap-to-SOL transactions.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from .cache import MemoryCache, claim_rate_guard, genesis_key, record_build, release_rate_guard, swap_key
from .errors import AccountExistsError, InvalidInputError, WrongClusterError
from .fees import FeePolicy, burn_fee_for, platform_fee_for, transfer_fee_for, validate_fee_policy
from .instructions import assemble_swap_instructions, wrapped_sol_address
from .jupiter_client import JupiterClient, JupiterQuote
from .message_compiler import FeeAwareMessageCompiler
from .message_token import JUPITER_SWAP_TOKEN_KEY, MessageToken
from .preflight import ensure_simulation_succeeds
from .solana_client import MAINNET_BETA_GENESIS_HASH, SolanaClient
from .utils import get_terminal_colors, short_address

# Get terminal colors (empty if output is redirected)
colors = get_terminal_colors()

logger = logging.getLogger(__name__)

DEFAULT_SAME_MINT_TIMEOUT_MS = 3000


@dataclass
class SwapBuildResult:
    """Unsigned transaction, the quote it was built from, and its message token."""
    transaction: VersionedTransaction
    message: MessageV0
    quote: JupiterQuote
    message_token: str
    network_fee: int
    reimbursement: int
    platform_fee: int
    burn_fee: int
    transfer_fee: int


async def ensure_expected_cluster(
    solana: SolanaClient,
    cache: MemoryCache,
    expected_genesis_hash: str = MAINNET_BETA_GENESIS_HASH
) -> None:
    """
    Check the RPC endpoint's genesis hash, memoized per endpoint.

    Raises:
        WrongClusterError: If the endpoint belongs to another cluster
    """
    key = genesis_key(solana.rpc_url)
    genesis_hash = await cache.get(key)
    if not genesis_hash:
        genesis_hash = await solana.get_genesis_hash()
        await cache.set(key, genesis_hash)

    if genesis_hash != expected_genesis_hash:
        logger.error(f"RPC endpoint genesis {genesis_hash} != expected {expected_genesis_hash}")
        raise WrongClusterError("Jupiter swap endpoint can only run attached to the mainnet-beta cluster")


async def build_jupiter_swap_to_sol(
    solana: SolanaClient,
    jupiter: JupiterClient,
    fee_payer: Keypair,
    user: Pubkey,
    source_mint: Pubkey,
    amount: int,
    cache: MemoryCache,
    same_mint_timeout: int = DEFAULT_SAME_MINT_TIMEOUT_MS,
    fee_policy: Optional[FeePolicy] = None,
    platform_fee_bps: int = 0,
    slippage_bps: int = 50,
    expected_genesis_hash: str = MAINNET_BETA_GENESIS_HASH
) -> SwapBuildResult:
    """
    Build an unsigned transaction that swaps a user's token to SOL and
    reimburses the fee payer out of the proceeds.

    Steps run in a fixed order and the first failure aborts the build. The
    rate guard is claimed atomically right after the cluster check and
    released again if any later step fails.

    Args:
        solana: Ledger facade
        jupiter: Routing client
        fee_payer: Sponsor keypair, only used to sign the message token
        user: Token holder
        source_mint: Mint being swapped
        amount: Amount in source mint base units, burn fee included. The
            transfer fee is charged on top, for a total debit of
            amount + transfer_fee
        cache: Genesis memo and rate guard store
        same_mint_timeout: Required interval between builds for same user and mint, ms
        fee_policy: Token fee schedule for source_mint, if any
        platform_fee_bps: Platform fee on the quoted SOL output
        slippage_bps: Slippage passed to the quote
        expected_genesis_hash: Genesis hash of the cluster we must be attached to

    Returns:
        SwapBuildResult

    Raises:
        SwapBuildError: Subclass describing the first unmet precondition
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidInputError("Amount can't be zero or less")
    if fee_policy is not None:
        validate_fee_policy(fee_policy)

    await ensure_expected_cluster(solana, cache, expected_genesis_hash)

    key = swap_key(user, source_mint)
    claimed_ms = await claim_rate_guard(cache, key, same_mint_timeout)
    try:
        result = await _build_claimed(
            solana, jupiter, fee_payer, user, source_mint, amount,
            fee_policy, platform_fee_bps, slippage_bps
        )
    except BaseException:
        await release_rate_guard(cache, key, claimed_ms)
        raise

    await record_build(cache, key)
    return result


async def _build_claimed(
    solana: SolanaClient,
    jupiter: JupiterClient,
    fee_payer: Keypair,
    user: Pubkey,
    source_mint: Pubkey,
    amount: int,
    fee_policy: Optional[FeePolicy],
    platform_fee_bps: int,
    slippage_bps: int
) -> SwapBuildResult:
    wsol_account = wrapped_sol_address(user)
    if await solana.account_exists(wsol_account):
        raise AccountExistsError("Associated SOL account exists for user")

    burn_fee = burn_fee_for(amount, fee_policy)
    transfer_fee = transfer_fee_for(amount, fee_policy)
    swap_amount = amount - burn_fee
    if swap_amount <= 0:
        raise InvalidInputError("Amount is too small to cover the burn fee")

    quote = await jupiter.get_quote(str(source_mint), swap_amount, slippage_bps=slippage_bps)
    routed = await jupiter.get_swap_instructions(quote, str(user))

    rent_float = await solana.get_minimum_balance_for_rent_exemption()
    platform_fee = platform_fee_for(quote.out_amount, platform_fee_bps)

    instruction_set = assemble_swap_instructions(
        fee_payer=fee_payer.pubkey(),
        user=user,
        source_mint=source_mint,
        routed=routed,
        rent_float=rent_float,
        platform_fee=platform_fee,
        burn_fee=burn_fee,
        transfer_fee=transfer_fee,
        fee_policy=fee_policy
    )

    compiled = await FeeAwareMessageCompiler(solana).compile(
        fee_payer.pubkey(), instruction_set, routed.address_lookup_tables
    )
    transaction = compiled.unsigned_transaction()

    await ensure_simulation_succeeds(solana, transaction)

    message_token = MessageToken(JUPITER_SWAP_TOKEN_KEY, compiled.message_bytes(), fee_payer).compile()

    logger.info(
        f"Built sponsored swap for {colors['CYAN']}{short_address(user)}{colors['RESET']}: "
        f"{colors['GREEN']}{swap_amount}{colors['RESET']} of {colors['CYAN']}{short_address(source_mint)}{colors['RESET']} "
        f"-> {colors['GREEN']}{quote.out_amount}{colors['RESET']} lamports, "
        f"reimbursement={colors['YELLOW']}{compiled.reimbursement}{colors['RESET']} "
        f"(rent={rent_float}, platform={platform_fee}, network={compiled.network_fee}), "
        f"burn={burn_fee}, transfer={transfer_fee}"
    )

    return SwapBuildResult(
        transaction=transaction,
        message=compiled.message,
        quote=quote,
        message_token=message_token,
        network_fee=compiled.network_fee,
        reimbursement=compiled.reimbursement,
        platform_fee=platform_fee,
        burn_fee=burn_fee,
        transfer_fee=transfer_fee
    )
