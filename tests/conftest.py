"""
Pytest configuration and fixtures for sponsored swap tests.
"""
import base64
import struct

import pytest
from unittest.mock import AsyncMock, MagicMock
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID

from sponsored_swap.cache import MemoryCache
from sponsored_swap.jupiter_client import JupiterQuote, parse_swap_instructions
from sponsored_swap.solana_client import MAINNET_BETA_GENESIS_HASH

JUPITER_PROGRAM = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
COMPUTE_BUDGET_PROGRAM = "ComputeBudget111111111111111111111111111111"
RENT_FLOAT = 2_039_280
NETWORK_FEE = 5_000


def reimbursement_lamports(message: MessageV0, user: Pubkey, fee_payer: Pubkey) -> int:
    """Lamports of the System transfer user -> fee_payer inside a compiled message."""
    keys = list(message.account_keys)
    for ix in message.instructions:
        if keys[ix.program_id_index] != SYSTEM_PROGRAM_ID:
            continue
        data = bytes(ix.data)
        accounts = [keys[i] for i in bytes(ix.accounts)]
        if len(data) == 12 and struct.unpack_from("<I", data)[0] == 2 and accounts == [user, fee_payer]:
            return struct.unpack_from("<Q", data, 4)[0]
    raise AssertionError("no reimbursement transfer in message")


@pytest.fixture
def fee_payer():
    """Fee payer keypair."""
    return Keypair()


@pytest.fixture
def user():
    """Token holder public key."""
    return Keypair().pubkey()


@pytest.fixture
def usdc_mint():
    """USDC mint address."""
    return "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture
def sol_mint():
    """Wrapped SOL mint address."""
    return "So11111111111111111111111111111111111111112"


@pytest.fixture
def source_mint(usdc_mint):
    return Pubkey.from_string(usdc_mint)


@pytest.fixture
def quote_payload(usdc_mint, sol_mint):
    """Raw Jupiter quote response."""
    return {
        "inputMint": usdc_mint,
        "inAmount": "1000000",
        "outputMint": sol_mint,
        "outAmount": "6500000",
        "otherAmountThreshold": "6467500",
        "swapMode": "ExactIn",
        "slippageBps": 50,
        "priceImpactPct": "0.001",
        "routePlan": [],
        "contextSlot": 123,
    }


@pytest.fixture
def quote(quote_payload):
    return JupiterQuote(
        input_mint=quote_payload["inputMint"],
        output_mint=quote_payload["outputMint"],
        in_amount=int(quote_payload["inAmount"]),
        out_amount=int(quote_payload["outAmount"]),
        other_amount_threshold=int(quote_payload["otherAmountThreshold"]),
        slippage_bps=quote_payload["slippageBps"],
        price_impact_pct=float(quote_payload["priceImpactPct"]),
        raw=quote_payload
    )


@pytest.fixture
def swap_instructions_payload(user):
    """Raw Jupiter /swap-instructions response for `user`."""
    pool = str(Keypair().pubkey())
    vault = str(Keypair().pubkey())

    def encode(data: bytes) -> str:
        return base64.b64encode(data).decode()

    return {
        "computeBudgetInstructions": [
            {
                "programId": COMPUTE_BUDGET_PROGRAM,
                "accounts": [],
                "data": encode(bytes([2]) + struct.pack("<I", 400_000)),
            },
        ],
        "setupInstructions": [
            {
                "programId": "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL",
                "accounts": [{"pubkey": str(user), "isSigner": True, "isWritable": True}],
                "data": encode(b"\x01"),
            },
        ],
        "swapInstruction": {
            "programId": JUPITER_PROGRAM,
            "accounts": [
                {"pubkey": str(user), "isSigner": True, "isWritable": False},
                {"pubkey": pool, "isSigner": False, "isWritable": True},
                {"pubkey": vault, "isSigner": False, "isWritable": True},
            ],
            "data": encode(b"\xe5\x17\xcb\x97\x7a\xe3\xad\x2a"),
        },
        "cleanupInstruction": None,
        "addressLookupTableAddresses": [],
    }


@pytest.fixture
def routed(swap_instructions_payload):
    return parse_swap_instructions(swap_instructions_payload)


@pytest.fixture
def cache():
    return MemoryCache()


@pytest.fixture
def mock_solana_client():
    """SolanaClient mock attached to mainnet-beta with a healthy ledger."""
    client = AsyncMock()
    client.rpc_url = "https://api.mainnet-beta.solana.com"
    client.get_genesis_hash.return_value = MAINNET_BETA_GENESIS_HASH
    client.account_exists.return_value = False
    client.get_minimum_balance_for_rent_exemption.return_value = RENT_FLOAT
    client.get_address_lookup_table_accounts.return_value = []
    client.get_latest_blockhash.return_value = Hash.default()
    client.get_fee_for_message.return_value = NETWORK_FEE

    sim_result = MagicMock()
    sim_result.err = None
    sim_result.logs = ["Program log: ok"]
    sim_result.units_consumed = 42_000
    client.simulate.return_value = sim_result
    return client


@pytest.fixture
def mock_jupiter_client(quote, routed):
    """JupiterClient mock returning `quote` and `routed`."""
    client = AsyncMock()
    client.get_quote.return_value = quote
    client.get_swap_instructions.return_value = routed
    return client
