"""
Pre-flight simulation gate: no transaction leaves the builder unsimulated.
"""
import logging

from solders.transaction import VersionedTransaction

from .errors import SimulationFailureError
from .solana_client import SolanaClient

logger = logging.getLogger(__name__)


def _format_sim_logs(logs, tail: int = 10) -> str:
    """Last `tail` program log lines, one per line."""
    if not logs:
        return ""
    return "\n".join(list(logs)[-tail:])


async def ensure_simulation_succeeds(solana: SolanaClient, tx: VersionedTransaction) -> int:
    """
    Simulate tx and fail the build if it would not execute.

    Returns:
        Compute units consumed by the simulation (0 if not reported)

    Raises:
        SimulationFailureError: If the simulation reports an error
    """
    result = await solana.simulate(tx)
    logs = list(result.logs or [])
    if result.err:
        tail = _format_sim_logs(logs)
        if tail:
            logger.debug(f"Simulation logs (tail):\n{tail}")
        raise SimulationFailureError(f"Simulation failed: {result.err}", logs=logs)

    units_consumed = result.units_consumed or 0
    logger.debug(f"Simulation OK, {units_consumed} compute units")
    return units_consumed
