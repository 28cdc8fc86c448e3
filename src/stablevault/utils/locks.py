"""Serialization of vault operations arriving from concurrent callers.

The reentrancy guard rejects a second entry outright. Independent API
requests should instead queue, so the service layer takes one of these
locks (keyed by vault address) around each state-mutating call.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

logger = logging.getLogger(__name__)

# Lock registry: vault key -> asyncio.Lock
_vault_locks: dict[str, asyncio.Lock] = {}


class LockTimeoutError(Exception):
    """Raised when a lock cannot be acquired within the timeout period."""

    pass


def get_vault_lock(key: str) -> asyncio.Lock:
    """Get or create the lock for a vault.

    Args:
        key: Vault identity (its custody address)

    Returns:
        asyncio.Lock for the vault
    """
    lock = _vault_locks.get(key)
    if lock is None:
        lock = _vault_locks[key] = asyncio.Lock()
    return lock


@asynccontextmanager
async def vault_operation_lock(
    key: str,
    timeout: Optional[float] = 30.0,
    operation: str = "vault_operation",
):
    """Wait for exclusive access to a vault.

    Args:
        key: Vault identity
        timeout: Maximum time to wait (None = wait forever)
        operation: Description for logging

    Raises:
        LockTimeoutError: If the lock is not acquired in time

    Example:
        async with vault_operation_lock(vault.transfers.vault_address, operation="deposit"):
            await vault.deposit_native(depositor, value)
    """
    lock = get_vault_lock(key)

    try:
        if timeout:
            await asyncio.wait_for(lock.acquire(), timeout=timeout)
        else:
            await lock.acquire()
    except asyncio.TimeoutError:
        logger.warning(f"Lock timeout for vault {key} after {timeout}s: {operation}")
        raise LockTimeoutError(f"Could not acquire lock for vault {key} within {timeout}s")

    logger.debug(f"Lock acquired for vault {key}: {operation}")
    try:
        yield
    finally:
        lock.release()
        logger.debug(f"Lock released for vault {key}: {operation}")


def clear_vault_locks() -> None:
    """Clear all vault locks (useful for testing)."""
    _vault_locks.clear()
