"""
In-process key-value cache used for network facts and the per-user rate guard.

Two kinds of keys share the same store:
- genesis/{endpoint}: memoized cluster genesis hash, never expires
- swap/{user}/{mint}: millisecond timestamp of the last successful build,
  or of the claim held by a build still in flight
"""
import logging
import time
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from .errors import RateLimitedError

logger = logging.getLogger(__name__)

SWAP_KEY_PREFIX = "swap/"


def now_ms() -> int:
    """Current wall clock in milliseconds."""
    return int(time.time() * 1000)


def genesis_key(endpoint: str) -> str:
    return f"genesis/{endpoint}"


def swap_key(user: Pubkey, source_mint: Pubkey) -> str:
    return f"{SWAP_KEY_PREFIX}{user}/{source_mint}"


class MemoryCache:
    """
    Minimal async cache with get/set semantics.

    Genesis entries never expire. Rate-guard expiry is computed from the
    stored timestamp, and expired rate-guard entries are pruned whenever a
    new claim is taken.
    """

    def __init__(self):
        self._store: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._store.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def set_if_absent_or_expired(self, key: str, timestamp_ms: int, window_ms: int) -> bool:
        """
        Store timestamp_ms unless key holds a timestamp younger than window_ms.

        Read and write happen without yielding to the event loop, so two
        coroutines can never both claim the same key. A shared store would
        back this with a conditional put (e.g. Redis SET NX PX).

        Returns:
            True if the value was stored
        """
        current = self._store.get(key)
        if current is not None and timestamp_ms - int(current) < window_ms:
            return False
        self._store[key] = timestamp_ms
        return True

    async def delete_if_equal(self, key: str, value: Any) -> None:
        if key in self._store and self._store[key] == value:
            del self._store[key]

    async def prune(self, prefix: str, older_than_ms: int) -> int:
        """
        Drop timestamp entries under prefix stamped before older_than_ms.

        Returns:
            Number of entries removed
        """
        expired = [
            key for key, value in self._store.items()
            if key.startswith(prefix) and int(value) < older_than_ms
        ]
        for key in expired:
            del self._store[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._store)


async def claim_rate_guard(
    cache: MemoryCache,
    key: str,
    same_mint_timeout_ms: int,
    current_ms: Optional[int] = None
) -> int:
    """
    Atomically reserve key for one build.

    Returns:
        The claimed timestamp, needed to release the claim

    Raises:
        RateLimitedError: If the last build or an in-flight claim is younger
            than same_mint_timeout_ms
    """
    if current_ms is None:
        current_ms = now_ms()

    pruned = await cache.prune(SWAP_KEY_PREFIX, current_ms - same_mint_timeout_ms)
    if pruned:
        logger.debug(f"Pruned {pruned} expired rate guard entries")

    if not await cache.set_if_absent_or_expired(key, current_ms, same_mint_timeout_ms):
        last_build_ms = await cache.get(key)
        logger.info(
            f"Rate guard hit for {key}: {current_ms - int(last_build_ms)}ms since last build "
            f"(window {same_mint_timeout_ms}ms)"
        )
        raise RateLimitedError("Too many requests for same user and mint")
    return current_ms


async def release_rate_guard(cache: MemoryCache, key: str, claimed_ms: int) -> None:
    """Drop a claim whose build failed, so the user can retry at once."""
    await cache.delete_if_equal(key, claimed_ms)


async def record_build(cache: MemoryCache, key: str, current_ms: Optional[int] = None) -> None:
    """Stamp key with the completion time of a fully successful build."""
    await cache.set(key, now_ms() if current_ms is None else current_ms)
