"""
Instruction assembly for a sponsored token -> SOL swap.

Order is fixed and must not change between the two compilation passes:
1. compute budget
2. create user's wrapped SOL account (idempotent, paid by fee payer)
3. Jupiter swap
4. close wrapped SOL account to user, reimburse fee payer in SOL,
   burn fee, transfer fee
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from solders.compute_budget import set_compute_unit_limit, set_compute_unit_price
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer
from spl.token.constants import TOKEN_PROGRAM_ID, WRAPPED_SOL_MINT
from spl.token.instructions import (
    BurnParams,
    CloseAccountParams,
    burn,
    close_account,
    create_idempotent_associated_token_account,
    get_associated_token_address,
)
from spl.token.instructions import TransferParams as TokenTransferParams
from spl.token.instructions import transfer as token_transfer

from .errors import RoutingFailureError
from .fees import FeePolicy
from .jupiter_client import JupiterSwapInstructionsResponse, SwapInstruction
from .utils import get_terminal_colors

colors = get_terminal_colors()

logger = logging.getLogger(__name__)

DEFAULT_COMPUTE_UNIT_LIMIT = 1_200_000
DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS = 10


def default_priority_fee_instructions() -> List[Instruction]:
    """Compute budget used when the routing bundle carries none."""
    return [
        set_compute_unit_limit(DEFAULT_COMPUTE_UNIT_LIMIT),
        set_compute_unit_price(DEFAULT_COMPUTE_UNIT_PRICE_MICRO_LAMPORTS),
    ]


def to_solana_instruction(swap_instr: SwapInstruction) -> Instruction:
    """
    Convert a routed SwapInstruction into a solders Instruction.

    Raises:
        RoutingFailureError: If program id or an account is not a valid pubkey
    """
    try:
        program_id = Pubkey.from_string(swap_instr.program_id)
        accounts = [
            AccountMeta(
                pubkey=Pubkey.from_string(account_meta.pubkey),
                is_signer=account_meta.is_signer,
                is_writable=account_meta.is_writable
            )
            for account_meta in swap_instr.accounts
        ]
    except ValueError as e:
        raise RoutingFailureError(f"Failed to decode swap instruction: {e}") from e

    return Instruction(program_id=program_id, accounts=accounts, data=swap_instr.data)


def wrapped_sol_address(user: Pubkey) -> Pubkey:
    """User's associated wrapped SOL token account."""
    return get_associated_token_address(user, WRAPPED_SOL_MINT)


@dataclass
class SwapInstructionSet:
    """
    Everything needed to emit the instruction list for either compile pass.

    Only the SOL reimbursement amount depends on the pass; the instruction
    count, order and accounts never do.
    """
    fee_payer: Pubkey
    user: Pubkey
    wsol_account: Pubkey
    compute_budget: List[Instruction]
    create_wsol_account: Instruction
    swap: Instruction
    close_wsol_account: Instruction
    rent_float: int
    platform_fee: int
    token_fee_instructions: List[Instruction] = field(default_factory=list)
    burn_fee: int = 0
    transfer_fee: int = 0

    def reimbursement(self, network_fee: int = 0) -> int:
        """Lamports the user transfers back to the fee payer."""
        return self.rent_float + self.platform_fee + network_fee

    def reimbursement_instruction(self, network_fee: int = 0) -> Instruction:
        return transfer(TransferParams(
            from_pubkey=self.user,
            to_pubkey=self.fee_payer,
            lamports=self.reimbursement(network_fee)
        ))

    def build(self, network_fee: int = 0) -> List[Instruction]:
        return [
            *self.compute_budget,
            self.create_wsol_account,
            self.swap,
            self.close_wsol_account,
            self.reimbursement_instruction(network_fee),
            *self.token_fee_instructions,
        ]


def assemble_swap_instructions(
    fee_payer: Pubkey,
    user: Pubkey,
    source_mint: Pubkey,
    routed: JupiterSwapInstructionsResponse,
    rent_float: int,
    platform_fee: int = 0,
    burn_fee: int = 0,
    transfer_fee: int = 0,
    fee_policy: Optional[FeePolicy] = None
) -> SwapInstructionSet:
    """
    Build the fixed-order instruction set for one sponsored swap.

    Jupiter's own setup and cleanup instructions are dropped: the wrapped SOL
    account is created by the fee payer and closed by the cleanup here.

    Args:
        fee_payer: Sponsor public key (pays ATA rent and network fee)
        user: Token holder being sponsored
        source_mint: Mint of the token being swapped
        routed: Parsed Jupiter swap instructions
        rent_float: Rent-exempt minimum of the wrapped SOL account, lamports
        platform_fee: Platform fee in lamports
        burn_fee: Source tokens to burn, base units
        transfer_fee: Source tokens to send to the fee account, base units
        fee_policy: Fee policy, required when transfer_fee > 0

    Raises:
        RoutingFailureError: If routed instructions cannot be decoded
    """
    if routed.compute_budget_instructions:
        compute_budget = [to_solana_instruction(i) for i in routed.compute_budget_instructions]
    else:
        compute_budget = default_priority_fee_instructions()

    wsol_account = wrapped_sol_address(user)
    create_wsol_account = create_idempotent_associated_token_account(fee_payer, user, WRAPPED_SOL_MINT)
    swap = to_solana_instruction(routed.swap_instruction)
    close_wsol_account = close_account(CloseAccountParams(
        program_id=TOKEN_PROGRAM_ID,
        account=wsol_account,
        dest=user,
        owner=user,
        signers=[]
    ))

    source_account = get_associated_token_address(user, source_mint)
    token_fee_instructions: List[Instruction] = []
    if burn_fee > 0:
        token_fee_instructions.append(burn(BurnParams(
            program_id=TOKEN_PROGRAM_ID,
            account=source_account,
            mint=source_mint,
            owner=user,
            amount=burn_fee,
            signers=[]
        )))
    if transfer_fee > 0:
        if fee_policy is None:
            raise ValueError("transfer_fee requires a fee policy with a fee account")
        token_fee_instructions.append(token_transfer(TokenTransferParams(
            program_id=TOKEN_PROGRAM_ID,
            source=source_account,
            dest=fee_policy.fee_account,
            owner=user,
            amount=transfer_fee,
            signers=[]
        )))

    dropped = len(routed.setup_instructions) + (1 if routed.cleanup_instruction else 0)
    if dropped:
        logger.debug(f"Dropped {dropped} routed setup/cleanup instruction(s)")

    instruction_set = SwapInstructionSet(
        fee_payer=fee_payer,
        user=user,
        wsol_account=wsol_account,
        compute_budget=compute_budget,
        create_wsol_account=create_wsol_account,
        swap=swap,
        close_wsol_account=close_wsol_account,
        rent_float=rent_float,
        platform_fee=platform_fee,
        token_fee_instructions=token_fee_instructions,
        burn_fee=burn_fee,
        transfer_fee=transfer_fee
    )

    logger.debug(
        f"Assembled {colors['GREEN']}{len(instruction_set.build())}{colors['RESET']} instructions: "
        f"rent={colors['GREEN']}{rent_float}{colors['RESET']} "
        f"platform_fee={colors['YELLOW']}{platform_fee}{colors['RESET']} "
        f"burn={colors['YELLOW']}{burn_fee}{colors['RESET']} "
        f"transfer={colors['YELLOW']}{transfer_fee}{colors['RESET']}"
    )
    return instruction_set

