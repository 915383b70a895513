"""
Jupiter API client for swap quotes and swap instructions.
"""
import base64
import binascii
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from solders.pubkey import Pubkey
from spl.token.constants import WRAPPED_SOL_MINT

from .errors import RoutingFailureError

logger = logging.getLogger(__name__)


@dataclass
class JupiterQuote:
    """Quote response from Jupiter API.

    raw keeps the untouched JSON: it is posted back to /swap-instructions and
    returned to the client as-is.
    """
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    other_amount_threshold: int
    slippage_bps: int
    price_impact_pct: float
    raw: Dict[str, Any] = field(default_factory=dict)
    time_taken: Optional[float] = None


@dataclass
class SwapAccountMeta:
    """Account metadata for a routed instruction."""
    pubkey: str
    is_signer: bool
    is_writable: bool


@dataclass
class SwapInstruction:
    """Single instruction from Jupiter API with base64 data already decoded."""
    program_id: str
    accounts: List[SwapAccountMeta]
    data: bytes


@dataclass
class JupiterSwapInstructionsResponse:
    """Swap instructions response from Jupiter API."""
    compute_budget_instructions: List[SwapInstruction]
    setup_instructions: List[SwapInstruction]
    swap_instruction: SwapInstruction
    cleanup_instruction: Optional[SwapInstruction]
    address_lookup_tables: List[str]  # ALT addresses


def _parse_accounts(accounts_data: Any) -> List[SwapAccountMeta]:
    """
    Parse [{"pubkey": ..., "isSigner": bool, "isWritable": bool}, ...].

    Raises:
        ValueError: If an entry is not an object with a pubkey
    """
    if not isinstance(accounts_data, list):
        raise ValueError(f"Unexpected accounts format: {type(accounts_data).__name__}")

    parsed_accounts = []
    for account_data in accounts_data:
        if not isinstance(account_data, dict) or not isinstance(account_data.get("pubkey"), str):
            raise ValueError(f"Unexpected account format: {account_data!r}")
        parsed_accounts.append(SwapAccountMeta(
            pubkey=account_data["pubkey"],
            is_signer=bool(account_data.get("isSigner", False)),
            is_writable=bool(account_data.get("isWritable", False))
        ))
    return parsed_accounts


def parse_instruction(instr_data: Any) -> SwapInstruction:
    """
    Decode one instruction payload.

    Raises:
        RoutingFailureError: If the payload is missing fields or data is not base64
    """
    try:
        if not isinstance(instr_data, dict):
            raise ValueError(f"expected an object, got {type(instr_data).__name__}")
        program_id = instr_data["programId"]
        if not isinstance(program_id, str):
            raise ValueError("programId must be a string")
        accounts = _parse_accounts(instr_data.get("accounts", []))
        data = base64.b64decode(instr_data.get("data", ""), validate=True)
    except (KeyError, ValueError, TypeError, binascii.Error) as e:
        raise RoutingFailureError(f"Failed to decode swap instruction: {e}") from e

    return SwapInstruction(program_id=program_id, accounts=accounts, data=data)


def _parse_lookup_tables(data: Dict[str, Any]) -> List[str]:
    raw_alts = (
        data.get("addressLookupTableAddresses")
        or data.get("addressLookupTables")
        or []
    )
    address_lookup_tables: List[str] = []
    if not isinstance(raw_alts, list):
        raise RoutingFailureError("Failed to get swap instructions: lookup tables must be a list")
    for x in raw_alts:
        address = x
        if isinstance(x, dict):
            address = next((x[k] for k in ("accountKey", "address", "key") if isinstance(x.get(k), str)), None)
        try:
            Pubkey.from_string(address)
        except (ValueError, TypeError):
            raise RoutingFailureError(
                f"Failed to get swap instructions: invalid lookup table address {x!r}"
            ) from None
        address_lookup_tables.append(address)

    # Deduplicate while preserving order
    seen = set()
    return [a for a in address_lookup_tables if not (a in seen or seen.add(a))]


def _parse_quote(data: Any) -> JupiterQuote:
    if not isinstance(data, dict):
        raise RoutingFailureError("Failed to get quote: unexpected response format")
    if data.get("error"):
        raise RoutingFailureError(f"Failed to get quote: {data['error']}")
    try:
        return JupiterQuote(
            input_mint=str(data["inputMint"]),
            output_mint=str(data["outputMint"]),
            in_amount=int(data["inAmount"]),
            out_amount=int(data["outAmount"]),
            other_amount_threshold=int(data.get("otherAmountThreshold", data["outAmount"])),
            slippage_bps=int(data.get("slippageBps", 0)),
            price_impact_pct=float(data.get("priceImpactPct", 0) or 0),
            raw=data
        )
    except (KeyError, ValueError, TypeError) as e:
        raise RoutingFailureError(f"Failed to get quote: malformed quote ({e})") from e


def parse_swap_instructions(data: Any) -> JupiterSwapInstructionsResponse:
    """
    Parse a /swap-instructions response.

    Raises:
        RoutingFailureError: On error payloads or undecodable instructions
    """
    if not isinstance(data, dict):
        raise RoutingFailureError("Failed to get swap instructions: unexpected response format")
    if data.get("error"):
        raise RoutingFailureError(f"Failed to get swap instructions: {data['error']}")
    if not data.get("swapInstruction"):
        raise RoutingFailureError("Failed to get swap instructions: missing swapInstruction")

    cleanup_instruction = None
    if data.get("cleanupInstruction"):
        cleanup_instruction = parse_instruction(data["cleanupInstruction"])

    return JupiterSwapInstructionsResponse(
        compute_budget_instructions=[parse_instruction(i) for i in data.get("computeBudgetInstructions") or []],
        setup_instructions=[parse_instruction(i) for i in data.get("setupInstructions") or []],
        swap_instruction=parse_instruction(data["swapInstruction"]),
        cleanup_instruction=cleanup_instruction,
        address_lookup_tables=_parse_lookup_tables(data)
    )


class JupiterClient:
    """Client for the Jupiter Aggregator v6 API.

    No retries are attempted here: any failure aborts the current build.
    """

    DEFAULT_API_URL = "https://quote-api.jup.ag/v6"

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0
    ):
        """
        Initialize Jupiter API client.

        Args:
            api_url: API base URL (defaults to the public v6 endpoint)
            api_key: Jupiter API key, sent in the x-api-key header
            timeout: Request timeout in seconds
        """
        self.api_url = (api_url or self.DEFAULT_API_URL).rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

        headers = {}
        if api_key:
            headers["x-api-key"] = api_key

        self.client = httpx.AsyncClient(timeout=timeout, headers=headers)

    async def _request_json(self, method: str, url: str, what: str, **kwargs) -> Any:
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Jupiter {what} request to {url} failed: {e}")
            raise RoutingFailureError(f"Failed to get {what}: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            detail = data.get("error") if isinstance(data, dict) and data.get("error") else response.text
            logger.warning(f"Jupiter {what} failed: {response.status_code} - {detail}")
            raise RoutingFailureError(f"Failed to get {what}: {detail}")
        if data is None:
            raise RoutingFailureError(f"Failed to get {what}: response is not JSON")
        return data

    async def get_quote(
        self,
        input_mint: str,
        amount: int,
        output_mint: str = str(WRAPPED_SOL_MINT),
        slippage_bps: int = 50
    ) -> JupiterQuote:
        """
        Get an ExactIn quote.

        Args:
            input_mint: Input token mint address
            amount: Amount in smallest unit (already net of burn fee)
            output_mint: Output mint, native SOL by default
            slippage_bps: Slippage in basis points (1 bps = 0.01%)

        Raises:
            RoutingFailureError: On any error response or malformed quote
        """
        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps,
            "swapMode": "ExactIn"
        }
        start_time = time.monotonic()
        data = await self._request_json("GET", f"{self.api_url}/quote", "quote", params=params)
        quote = _parse_quote(data)
        quote.time_taken = time.monotonic() - start_time

        logger.debug(
            f"Quote: {input_mint[:8]}... -> {output_mint[:8]}... "
            f"in={quote.in_amount} out={quote.out_amount} impact={quote.price_impact_pct:.2f}%"
        )
        return quote

    async def get_swap_instructions(
        self,
        quote: JupiterQuote,
        user_public_key: str
    ) -> JupiterSwapInstructionsResponse:
        """
        Get swap instructions for a quote.

        Wrapping is disabled: the swap writes into a wrapped SOL account that
        the fee payer creates and the cleanup instructions close.

        Raises:
            RoutingFailureError: On error payloads or undecodable instructions
        """
        payload = {
            "quoteResponse": quote.raw,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": False
        }
        data = await self._request_json(
            "POST", f"{self.api_url}/swap-instructions", "swap instructions", json=payload
        )
        instructions = parse_swap_instructions(data)

        logger.debug(
            f"Swap instructions: {len(instructions.compute_budget_instructions)} compute budget, "
            f"{len(instructions.setup_instructions)} setup, 1 swap, "
            f"{1 if instructions.cleanup_instruction else 0} cleanup, "
            f"{len(instructions.address_lookup_tables)} ALTs"
        )
        return instructions

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
