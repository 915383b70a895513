"""
Command-line entry point: build one sponsored swap transaction and print it.
"""
import json
import logging
import sys
from typing import Any, Dict, Optional

from .api import SwapContext, handle_jupiter_swap_request
from .cache import MemoryCache
from .config import load_config, load_settings, load_wallet
from .jupiter_client import JupiterClient
from .solana_client import SolanaClient

logger = logging.getLogger(__name__)


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = 'sponsored_swap.log') -> None:
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


async def main(user: str, source_mint: str, amount: str) -> Dict[str, Any]:
    """Build a transaction for (user, source_mint, amount) and print the response."""
    logger.info("Starting sponsored swap build")

    config = load_config()
    settings = load_settings(config)

    fee_payer = load_wallet()
    if fee_payer is None:
        raise RuntimeError("FEE_PAYER_PRIVATE_KEY is required")
    logger.info(f"Fee payer: {fee_payer.pubkey()}")

    solana = SolanaClient(settings.rpc_url)
    jupiter = JupiterClient(settings.jupiter_api_url, api_key=settings.jupiter_api_key)
    context = SwapContext(
        solana=solana,
        jupiter=jupiter,
        cache=MemoryCache(),
        fee_payer=fee_payer,
        settings=settings
    )

    try:
        status, payload = await handle_jupiter_swap_request(
            {"user": user, "sourceMint": source_mint, "amount": amount},
            context
        )
    finally:
        await jupiter.close()
        await solana.close()

    print(json.dumps(payload, indent=2))
    if status != 200:
        logger.error(f"Build failed: {payload.get('message')}")
    return payload
