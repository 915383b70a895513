"""
Message tokens bind the fee payer's later countersignature to exact message bytes.

A token is the fee payer's ed25519 signature over key || message_bytes,
base58 encoded. The key separates this protocol from other token uses, so a
token minted for one endpoint never validates for another.
"""
import logging

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from .errors import SigningFailureError

logger = logging.getLogger(__name__)

JUPITER_SWAP_TOKEN_KEY = "jupiter-swap"


class MessageToken:
    """Signature-derived token over one compiled message."""

    def __init__(self, key: str, message_bytes: bytes, keypair: Keypair):
        self.key = key
        self.message_bytes = bytes(message_bytes)
        self.keypair = keypair

    @staticmethod
    def payload(key: str, message_bytes: bytes) -> bytes:
        return key.encode("utf-8") + bytes(message_bytes)

    def compile(self) -> str:
        """
        Raises:
            SigningFailureError: If signing fails (details logged, not surfaced)
        """
        try:
            signature = self.keypair.sign_message(self.payload(self.key, self.message_bytes))
        except Exception:
            logger.error("Error creating message token", exc_info=True)
            raise SigningFailureError() from None
        return base58.b58encode(bytes(signature)).decode("utf-8")

    @staticmethod
    def is_valid(key: str, message_bytes: bytes, token: str, public_key: Pubkey) -> bool:
        """True iff token was produced by public_key for exactly these message bytes."""
        try:
            raw = base58.b58decode(token)
        except (ValueError, TypeError):
            return False
        if len(raw) != 64:
            return False
        signature = Signature.from_bytes(raw)
        return signature.verify(public_key, MessageToken.payload(key, message_bytes))
