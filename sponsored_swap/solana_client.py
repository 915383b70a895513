"""
Solana RPC facade: cluster identity, account lookups, fees, and simulation.
"""
import base64
import logging
from typing import Any, List, Optional, Sequence

from solders.address_lookup_table_account import AddressLookupTable, AddressLookupTableAccount
from solders.hash import Hash
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

from .errors import LedgerError

logger = logging.getLogger(__name__)

MAINNET_BETA_GENESIS_HASH = "5eykt4UsFv8P8NJdTREpY1vzqKqZKvdpKuc147dw2N9d"

# Size of an SPL token account, used for the rent float of the wrapped SOL account
TOKEN_ACCOUNT_SIZE = 165


def _account_data_bytes(raw: Any) -> bytes:
    """
    Normalize account data to bytes.

    solana-py may return data as bytes, a base64 string, or ["<base64>", "base64"].
    """
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        return base64.b64decode(raw)
    if isinstance(raw, list) and raw and isinstance(raw[0], str):
        return base64.b64decode(raw[0])
    raise TypeError(f"Unexpected account data type: {type(raw).__name__}")


class SolanaClient:
    """Client for the Solana RPC operations a swap build needs."""

    def __init__(self, rpc_url: str):
        self.rpc_url = rpc_url
        self.client = AsyncClient(rpc_url)

    async def get_genesis_hash(self) -> str:
        """Get genesis hash of the cluster behind rpc_url (base58)."""
        try:
            result = await self.client.get_genesis_hash()
        except Exception as e:
            logger.error(f"Error getting genesis hash: {e}")
            raise LedgerError(f"Failed to get genesis hash: {e}") from e
        return str(result.value)

    async def get_account_info(self, pubkey: Pubkey) -> Optional[Any]:
        """
        Get account info.

        Returns:
            Account object, or None if the account does not exist
        """
        try:
            result = await self.client.get_account_info(pubkey, commitment=Confirmed, encoding="base64")
        except Exception as e:
            logger.error(f"Error getting account info for {pubkey}: {e}")
            raise LedgerError(f"Failed to get account info for {pubkey}: {e}") from e
        return result.value

    async def account_exists(self, pubkey: Pubkey) -> bool:
        return await self.get_account_info(pubkey) is not None

    async def get_multiple_accounts(self, pubkeys: Sequence[Pubkey]) -> List[Optional[Any]]:
        """Batch account lookup; missing accounts come back as None."""
        if not pubkeys:
            return []
        try:
            result = await self.client.get_multiple_accounts(list(pubkeys), commitment=Confirmed, encoding="base64")
        except Exception as e:
            logger.error(f"Error getting {len(pubkeys)} accounts: {e}")
            raise LedgerError(f"Failed to get accounts: {e}") from e
        return list(result.value)

    async def get_address_lookup_table_accounts(
        self,
        addresses: List[str]
    ) -> List[AddressLookupTableAccount]:
        """
        Get Address Lookup Table (ALT) accounts in one batch request.

        Tables that are absent on-chain or cannot be parsed are dropped: the
        message compiler then references their addresses inline.

        Args:
            addresses: List of ALT addresses (base58 strings)

        Returns:
            List of AddressLookupTableAccount objects, in request order
        """
        if not addresses:
            return []

        pubkeys = [Pubkey.from_string(address) for address in addresses]
        accounts = await self.get_multiple_accounts(pubkeys)

        alt_accounts = []
        for pubkey, account in zip(pubkeys, accounts):
            if account is None:
                logger.debug(f"ALT account {pubkey} not found, dropping")
                continue
            try:
                table = AddressLookupTable.deserialize(_account_data_bytes(account.data))
            except Exception as e:
                logger.warning(f"Cannot parse ALT account {pubkey}: {e}, dropping")
                continue
            alt_accounts.append(AddressLookupTableAccount(pubkey, table.addresses))
            logger.debug(f"Loaded ALT account: {pubkey} with {len(table.addresses)} addresses")

        return alt_accounts

    async def get_latest_blockhash(self) -> Hash:
        """Get recent blockhash for message compilation."""
        try:
            result = await self.client.get_latest_blockhash(commitment=Confirmed)
        except Exception as e:
            logger.error(f"Error getting recent blockhash: {e}")
            raise LedgerError(f"Failed to get recent blockhash: {e}") from e
        return result.value.blockhash

    async def get_fee_for_message(self, message: MessageV0) -> Optional[int]:
        """
        Get the network fee the cluster would charge for message, in lamports.

        Returns:
            Fee in lamports, or None if the blockhash is no longer valid
        """
        try:
            result = await self.client.get_fee_for_message(message, commitment=Confirmed)
        except Exception as e:
            logger.error(f"Error getting fee for message: {e}")
            raise LedgerError(f"Failed to get fee for message: {e}") from e
        return result.value

    async def get_minimum_balance_for_rent_exemption(self, size: int = TOKEN_ACCOUNT_SIZE) -> int:
        """Get the rent-exempt minimum balance for an account of size bytes."""
        try:
            result = await self.client.get_minimum_balance_for_rent_exemption(size, commitment=Confirmed)
        except Exception as e:
            logger.error(f"Error getting rent exemption for {size} bytes: {e}")
            raise LedgerError(f"Failed to get rent exemption: {e}") from e
        return result.value

    async def simulate(self, tx: VersionedTransaction) -> Any:
        """
        Simulate an unsigned VersionedTransaction (signature verification off).

        Returns:
            Simulation value with err, logs, units_consumed
        """
        try:
            result = await self.client.simulate_transaction(tx, sig_verify=False, commitment=Confirmed)
        except Exception as e:
            logger.error(f"Error simulating transaction: {e}")
            raise LedgerError(f"Failed to simulate transaction: {e}") from e

        if result.value.err:
            logger.warning(f"Simulation error: {result.value.err}")
        return result.value

    async def close(self):
        """Close RPC client."""
        await self.client.close()
