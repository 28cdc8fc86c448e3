"""Per-instance reentrancy guard."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from stablevault.errors import ReentrancyAttempt

logger = logging.getLogger(__name__)


class ReentrancyGuard:
    """Two-state lock covering every state-mutating vault entry point.

    Unlike an asyncio.Lock it never waits: a second acquisition while
    locked fails immediately, and the rejected call leaves the lock as it was.

    Example:
        async with guard.hold("withdraw_native"):
            ...
    """

    def __init__(self) -> None:
        self._active: Optional[str] = None

    @property
    def locked(self) -> bool:
        return self._active is not None

    @property
    def active_operation(self) -> Optional[str]:
        return self._active

    @asynccontextmanager
    async def hold(self, operation: str) -> AsyncIterator[None]:
        if self._active is not None:
            logger.warning(f"Reentrancy blocked: {operation} during {self._active}")
            raise ReentrancyAttempt(operation, self._active)

        self._active = operation
        logger.debug(f"Guard acquired: {operation}")
        try:
            yield
        finally:
            self._active = None
            logger.debug(f"Guard released: {operation}")
