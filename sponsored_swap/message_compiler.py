"""
Fee-aware compilation of the swap instruction set into a v0 message.

The network fee is only known once the message shape is fixed, but the
reimbursement transfer inside the message must include it. The compiler
compiles once, asks the cluster for the fee of that message, and compiles
again with the reimbursement raised by exactly that fee. The reimbursement
is a fixed-width u64, so the second message has the same size and signer set
as the first and therefore the same fee.
"""
import logging
from dataclasses import dataclass
from typing import List

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from .errors import LedgerError
from .instructions import SwapInstructionSet
from .solana_client import SolanaClient

logger = logging.getLogger(__name__)


@dataclass
class CompiledSwapMessage:
    """Final (second pass) message and the numbers that went into it."""
    message: MessageV0
    network_fee: int
    reimbursement: int
    recent_blockhash: Hash
    lookup_tables: List[AddressLookupTableAccount]

    def message_bytes(self) -> bytes:
        """Versioned wire bytes of the message, as signed by each signer."""
        return to_bytes_versioned(self.message)

    def unsigned_transaction(self) -> VersionedTransaction:
        """Transaction with placeholder signatures for every required signer."""
        signatures = [Signature.default()] * self.message.header.num_required_signatures
        return VersionedTransaction.populate(self.message, signatures)


def compile_message(
    fee_payer: Pubkey,
    instruction_set: SwapInstructionSet,
    network_fee: int,
    lookup_tables: List[AddressLookupTableAccount],
    recent_blockhash: Hash
) -> MessageV0:
    return MessageV0.try_compile(
        payer=fee_payer,
        instructions=instruction_set.build(network_fee),
        address_lookup_table_accounts=lookup_tables,
        recent_blockhash=recent_blockhash
    )


class FeeAwareMessageCompiler:
    """Compile, measure, recompile. Not a loop to convergence."""

    def __init__(self, solana: SolanaClient):
        self.solana = solana

    async def compile(
        self,
        fee_payer: Pubkey,
        instruction_set: SwapInstructionSet,
        lookup_table_addresses: List[str]
    ) -> CompiledSwapMessage:
        """
        Produce the final message with the network fee folded into the reimbursement.

        Args:
            fee_payer: Fee payer public key (message payer)
            instruction_set: Assembled instructions, shape already final
            lookup_table_addresses: ALT addresses referenced by the route

        Raises:
            LedgerError: If the cluster cannot price the first-pass message
        """
        lookup_tables = await self.solana.get_address_lookup_table_accounts(lookup_table_addresses)
        if len(lookup_tables) != len(lookup_table_addresses):
            logger.debug(
                f"Resolved {len(lookup_tables)}/{len(lookup_table_addresses)} lookup tables, "
                f"missing tables are referenced inline"
            )

        recent_blockhash = await self.solana.get_latest_blockhash()

        first_pass = compile_message(fee_payer, instruction_set, 0, lookup_tables, recent_blockhash)
        network_fee = await self.solana.get_fee_for_message(first_pass)
        if network_fee is None:
            raise LedgerError("Failed to estimate network fee: blockhash expired")

        final = compile_message(fee_payer, instruction_set, network_fee, lookup_tables, recent_blockhash)
        reimbursement = instruction_set.reimbursement(network_fee)

        logger.debug(
            f"Compiled swap message: network_fee={network_fee} reimbursement={reimbursement} "
            f"size={len(bytes(final))} bytes, ALTs={len(lookup_tables)}"
        )
        return CompiledSwapMessage(
            message=final,
            network_fee=network_fee,
            reimbursement=reimbursement,
            recent_blockhash=recent_blockhash,
            lookup_tables=lookup_tables
        )
