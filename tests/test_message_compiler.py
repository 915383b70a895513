"""
Tests for message_compiler.py
"""
import pytest
from solders.hash import Hash
from solders.signature import Signature

from sponsored_swap.errors import LedgerError
from sponsored_swap.instructions import assemble_swap_instructions
from sponsored_swap.message_compiler import FeeAwareMessageCompiler, compile_message

from .conftest import NETWORK_FEE, RENT_FLOAT, reimbursement_lamports


@pytest.fixture
def instruction_set(fee_payer, user, source_mint, routed):
    return assemble_swap_instructions(
        fee_payer.pubkey(), user, source_mint, routed, RENT_FLOAT, platform_fee=2_500
    )


class TestCompileMessage:
    """Tests for single-pass compilation."""

    def test_fee_payer_is_first_account(self, fee_payer, instruction_set):
        message = compile_message(fee_payer.pubkey(), instruction_set, 0, [], Hash.default())

        assert message.account_keys[0] == fee_payer.pubkey()

    def test_size_does_not_depend_on_fee(self, fee_payer, instruction_set):
        small = compile_message(fee_payer.pubkey(), instruction_set, 0, [], Hash.default())
        large = compile_message(fee_payer.pubkey(), instruction_set, 2**63, [], Hash.default())

        assert len(bytes(small)) == len(bytes(large))
        assert small.header == large.header
        assert small.account_keys == large.account_keys

    def test_user_and_fee_payer_sign(self, fee_payer, user, instruction_set):
        message = compile_message(fee_payer.pubkey(), instruction_set, 0, [], Hash.default())

        signers = message.account_keys[:message.header.num_required_signatures]
        assert list(signers) == [fee_payer.pubkey(), user]


class TestFeeAwareMessageCompiler:
    """Tests for the two-pass compile."""

    @pytest.mark.asyncio
    async def test_two_pass_compile(self, mock_solana_client, fee_payer, user, instruction_set):
        compiler = FeeAwareMessageCompiler(mock_solana_client)

        compiled = await compiler.compile(fee_payer.pubkey(), instruction_set, [])

        assert compiled.network_fee == NETWORK_FEE
        assert compiled.reimbursement == RENT_FLOAT + 2_500 + NETWORK_FEE
        assert reimbursement_lamports(compiled.message, user, fee_payer.pubkey()) == compiled.reimbursement

        first_pass = mock_solana_client.get_fee_for_message.await_args.args[0]
        assert reimbursement_lamports(first_pass, user, fee_payer.pubkey()) == RENT_FLOAT + 2_500
        assert mock_solana_client.get_fee_for_message.await_count == 1
        assert mock_solana_client.get_latest_blockhash.await_count == 1

    @pytest.mark.asyncio
    async def test_lookup_tables_requested(self, mock_solana_client, fee_payer, instruction_set):
        compiler = FeeAwareMessageCompiler(mock_solana_client)

        await compiler.compile(fee_payer.pubkey(), instruction_set, ["AltA"])

        mock_solana_client.get_address_lookup_table_accounts.assert_awaited_once_with(["AltA"])

    @pytest.mark.asyncio
    async def test_expired_blockhash(self, mock_solana_client, fee_payer, instruction_set):
        mock_solana_client.get_fee_for_message.return_value = None
        compiler = FeeAwareMessageCompiler(mock_solana_client)

        with pytest.raises(LedgerError, match="network fee"):
            await compiler.compile(fee_payer.pubkey(), instruction_set, [])

    @pytest.mark.asyncio
    async def test_unsigned_transaction(self, mock_solana_client, fee_payer, instruction_set):
        compiler = FeeAwareMessageCompiler(mock_solana_client)
        compiled = await compiler.compile(fee_payer.pubkey(), instruction_set, [])

        tx = compiled.unsigned_transaction()

        assert list(tx.signatures) == [Signature.default(), Signature.default()]
        assert tx.message == compiled.message
