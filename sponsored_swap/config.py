"""
Configuration loading from .env and config.json.

Environment variables take precedence over config.json, which takes
precedence over the defaults below.
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import base58
import dotenv
from solders.keypair import Keypair

from .solana_client import MAINNET_BETA_GENESIS_HASH

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent


@dataclass
class SwapSettings:
    """Runtime settings for the Jupiter swap endpoint."""
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    jupiter_api_url: Optional[str] = None  # None = JupiterClient default
    jupiter_api_key: Optional[str] = None
    expected_genesis_hash: str = MAINNET_BETA_GENESIS_HASH
    same_mint_timeout_ms: int = 3000
    platform_fee_bps: int = 0
    slippage_bps: int = 50
    fee_schedule: List[Dict[str, Any]] = field(default_factory=list)


def load_config(config_path: Optional[Path] = None, env_path: Optional[Path] = None) -> dict:
    """Load .env into the environment and return config.json contents."""
    env_path = env_path or PROJECT_ROOT / '.env'
    if env_path.exists():
        dotenv.load_dotenv(env_path)
    else:
        logger.warning(f".env file not found at {env_path}")

    config_path = config_path or PROJECT_ROOT / 'config.json'
    if config_path.exists():
        with open(config_path, 'r') as f:
            config = json.load(f)
    else:
        logger.warning(f"config.json not found at {config_path}")
        config = {}

    return config


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        logger.error(f"{name}={value!r} is not an integer, using {default}")
        return default


def load_settings(config: dict) -> SwapSettings:
    """Build SwapSettings from config.json contents and the environment."""
    endpoint = config.get('endpoints', {}).get('jupiterSwap', {})
    defaults = SwapSettings()

    settings = SwapSettings(
        rpc_url=os.getenv('RPC_URL') or config.get('rpcUrl') or defaults.rpc_url,
        jupiter_api_url=os.getenv('JUPITER_API_URL') or endpoint.get('apiUrl'),
        jupiter_api_key=os.getenv('JUPITER_API_KEY'),
        expected_genesis_hash=(
            os.getenv('EXPECTED_GENESIS_HASH')
            or config.get('expectedGenesisHash')
            or defaults.expected_genesis_hash
        ),
        same_mint_timeout_ms=_env_int(
            'SAME_MINT_TIMEOUT_MS', int(endpoint.get('sameMintTimeoutMs', defaults.same_mint_timeout_ms))
        ),
        platform_fee_bps=_env_int(
            'PLATFORM_FEE_BPS', int(endpoint.get('platformFeeBps', defaults.platform_fee_bps))
        ),
        slippage_bps=_env_int('SLIPPAGE_BPS', int(endpoint.get('slippageBps', defaults.slippage_bps))),
        fee_schedule=list(endpoint.get('tokens', []))
    )

    if settings.platform_fee_bps < 0:
        logger.error(f"PLATFORM_FEE_BPS ({settings.platform_fee_bps}) is negative, using 0")
        settings.platform_fee_bps = 0

    logger.info(
        f"Swap settings: same_mint_timeout={settings.same_mint_timeout_ms}ms, "
        f"platform_fee={settings.platform_fee_bps}bps, slippage={settings.slippage_bps}bps, "
        f"{len(settings.fee_schedule)} token fee entries"
    )
    return settings


def load_wallet(private_key_str: Optional[str] = None) -> Optional[Keypair]:
    """Load the fee payer keypair from a base58 secret key."""
    if not private_key_str:
        private_key_str = os.getenv('FEE_PAYER_PRIVATE_KEY')

    if not private_key_str:
        logger.warning("No fee payer private key provided")
        return None

    try:
        key_bytes = base58.b58decode(private_key_str)
        return Keypair.from_bytes(key_bytes)
    except ValueError as e:
        logger.error(f"Error loading fee payer keypair: {e}")
        return None
