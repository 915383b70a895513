"""
Tests for jupiter_client.py
"""
import base64

import httpx
import pytest
from unittest.mock import MagicMock, patch
from solders.keypair import Keypair

from sponsored_swap.errors import RoutingFailureError
from sponsored_swap.jupiter_client import (
    JupiterClient,
    JupiterQuote,
    parse_instruction,
    parse_swap_instructions,
)


def make_response(status_code, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if payload is None:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload
    return response


class TestJupiterClient:
    """Tests for JupiterClient class."""

    @pytest.fixture
    def client(self):
        """Create a JupiterClient instance for testing."""
        return JupiterClient(api_url=None, api_key=None, timeout=10.0)

    def test_jupiter_client_initialization(self, client):
        assert client.api_url == "https://quote-api.jup.ag/v6"
        assert client.api_key is None
        assert client.timeout == 10.0

    def test_jupiter_client_with_api_key(self):
        client = JupiterClient(api_url="https://api.jup.ag/swap/v1/", api_key="test_key")
        assert client.api_url == "https://api.jup.ag/swap/v1"
        assert client.client.headers["x-api-key"] == "test_key"

    @pytest.mark.asyncio
    async def test_get_quote_success(self, client, quote_payload, usdc_mint, sol_mint):
        with patch.object(client.client, 'request', return_value=make_response(200, quote_payload)) as request:
            quote = await client.get_quote(usdc_mint, 1_000_000)

        assert quote.input_mint == usdc_mint
        assert quote.output_mint == sol_mint
        assert quote.in_amount == 1_000_000
        assert quote.out_amount == 6_500_000
        assert quote.slippage_bps == 50
        assert quote.raw == quote_payload

        method, url = request.await_args.args
        assert method == "GET"
        assert url == "https://quote-api.jup.ag/v6/quote"
        params = request.await_args.kwargs["params"]
        assert params["amount"] == "1000000"
        assert params["outputMint"] == sol_mint

    @pytest.mark.asyncio
    async def test_get_quote_error_payload(self, client, usdc_mint):
        response = make_response(400, {"error": "Could not find any route"})

        with patch.object(client.client, 'request', return_value=response):
            with pytest.raises(RoutingFailureError, match="Could not find any route"):
                await client.get_quote(usdc_mint, 1_000_000)

    @pytest.mark.asyncio
    async def test_get_quote_non_numeric_out_amount(self, client, quote_payload, usdc_mint):
        quote_payload["outAmount"] = "lots"

        with patch.object(client.client, 'request', return_value=make_response(200, quote_payload)):
            with pytest.raises(RoutingFailureError, match="malformed quote"):
                await client.get_quote(usdc_mint, 1_000_000)

    @pytest.mark.asyncio
    async def test_get_quote_network_error(self, client, usdc_mint):
        with patch.object(client.client, 'request', side_effect=httpx.ConnectError("connection refused")):
            with pytest.raises(RoutingFailureError, match="connection refused"):
                await client.get_quote(usdc_mint, 1_000_000)

    @pytest.mark.asyncio
    async def test_get_quote_not_json(self, client, usdc_mint):
        with patch.object(client.client, 'request', return_value=make_response(200, None, "<html>")):
            with pytest.raises(RoutingFailureError, match="not JSON"):
                await client.get_quote(usdc_mint, 1_000_000)

    @pytest.mark.asyncio
    async def test_get_swap_instructions_success(self, client, quote, user, swap_instructions_payload):
        response = make_response(200, swap_instructions_payload)

        with patch.object(client.client, 'request', return_value=response) as request:
            routed = await client.get_swap_instructions(quote, str(user))

        assert len(routed.compute_budget_instructions) == 1
        assert len(routed.setup_instructions) == 1
        assert routed.cleanup_instruction is None
        assert routed.swap_instruction.program_id == "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
        assert routed.swap_instruction.accounts[0].pubkey == str(user)
        assert routed.swap_instruction.accounts[0].is_signer is True

        payload = request.await_args.kwargs["json"]
        assert payload["quoteResponse"] == quote.raw
        assert payload["userPublicKey"] == str(user)
        assert payload["wrapAndUnwrapSol"] is False

    @pytest.mark.asyncio
    async def test_get_swap_instructions_error_payload(self, client, quote, user):
        response = make_response(200, {"error": "Slippage tolerance exceeded"})

        with patch.object(client.client, 'request', return_value=response):
            with pytest.raises(RoutingFailureError, match="Failed to get swap instructions: Slippage"):
                await client.get_swap_instructions(quote, str(user))


class TestParseSwapInstructions:
    """Tests for instruction bundle decoding."""

    def test_missing_swap_instruction(self):
        with pytest.raises(RoutingFailureError, match="missing swapInstruction"):
            parse_swap_instructions({"computeBudgetInstructions": []})

    def test_invalid_base64_data(self, swap_instructions_payload):
        swap_instructions_payload["swapInstruction"]["data"] = "***not base64***"

        with pytest.raises(RoutingFailureError, match="Failed to decode swap instruction"):
            parse_swap_instructions(swap_instructions_payload)

    def test_accounts_without_metadata(self):
        with pytest.raises(RoutingFailureError):
            parse_instruction({"programId": "11111111111111111111111111111111", "accounts": ["abc"], "data": ""})

    def test_data_is_decoded(self):
        instr = parse_instruction({
            "programId": "11111111111111111111111111111111",
            "accounts": [],
            "data": base64.b64encode(b"\x02\x00\x00\x00").decode()
        })
        assert instr.data == b"\x02\x00\x00\x00"

    def test_lookup_tables_deduplicated(self, swap_instructions_payload):
        alt_a = str(Keypair().pubkey())
        alt_b = str(Keypair().pubkey())
        swap_instructions_payload["addressLookupTableAddresses"] = [alt_a, alt_b, alt_a]

        routed = parse_swap_instructions(swap_instructions_payload)

        assert routed.address_lookup_tables == [alt_a, alt_b]

    def test_lookup_tables_as_objects(self, swap_instructions_payload):
        alt = str(Keypair().pubkey())
        del swap_instructions_payload["addressLookupTableAddresses"]
        swap_instructions_payload["addressLookupTables"] = [{"accountKey": alt}]

        routed = parse_swap_instructions(swap_instructions_payload)

        assert routed.address_lookup_tables == [alt]

    @pytest.mark.parametrize("bad_alt", ["not-a-pubkey!!", 42, {"accountKey": None}])
    def test_invalid_lookup_table_address(self, swap_instructions_payload, bad_alt):
        swap_instructions_payload["addressLookupTableAddresses"] = [bad_alt]

        with pytest.raises(RoutingFailureError, match="invalid lookup table address"):
            parse_swap_instructions(swap_instructions_payload)


def test_jupiter_quote_keeps_raw(quote):
    assert isinstance(quote, JupiterQuote)
    assert quote.raw["otherAmountThreshold"] == "6467500"
