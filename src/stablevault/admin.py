"""Owner access control and bounded administrative setters."""

import logging
from typing import Optional

from stablevault.errors import InvalidReference, InvalidSlippageTolerance, NotOwner
from stablevault.events import EventType, VaultEvent
from stablevault.ledger.repository import LedgerRepository
from stablevault.units import MAX_SLIPPAGE_BPS

logger = logging.getLogger(__name__)


class AccessControl:
    """Holds the owner identity and authorizes administrative callers."""

    def __init__(self, owner: str):
        if not owner:
            raise InvalidReference("owner")
        self._owner = owner

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: Optional[str]) -> bool:
        return caller is not None and caller == self._owner

    def require_owner(self, caller: Optional[str]) -> None:
        """Raises NotOwner unless ``caller`` is the owner."""
        if not self.is_owner(caller):
            logger.warning(f"Unauthorized admin call by {caller!r}")
            raise NotOwner(caller)

    def transfer_to(self, new_owner: str) -> None:
        """Replace the in-memory owner once the persisted transfer has committed."""
        if not new_owner:
            raise InvalidReference("owner")
        self._owner = new_owner


class AdminConfig:
    """Owner-controlled mutable parameters.

    Each setter validates, persists through the repository of the current
    unit of work and returns the audit event describing the change; the
    caller records and publishes it with the rest of the operation's
    events. Failing validation changes nothing.
    """

    def __init__(self, access: AccessControl):
        self.access = access

    async def set_price_feed_reference(
        self, repo: LedgerRepository, caller: str, reference: Optional[str]
    ) -> VaultEvent:
        self.access.require_owner(caller)
        if not reference or not reference.strip():
            raise InvalidReference("price_feed_reference")

        state = await repo.get_state()
        previous = state.price_feed_reference
        await repo.update_state(price_feed_reference=reference)
        logger.info(f"Price feed reference updated: {previous} -> {reference}")
        return VaultEvent(EventType.FEED_UPDATED, caller, {"old": previous, "new": reference})

    async def set_slippage_tolerance(
        self, repo: LedgerRepository, caller: str, bps: int
    ) -> VaultEvent:
        self.access.require_owner(caller)
        if bps < 0 or bps > MAX_SLIPPAGE_BPS:
            raise InvalidSlippageTolerance(bps, MAX_SLIPPAGE_BPS)

        state = await repo.get_state()
        previous = state.slippage_tolerance_bps
        await repo.update_state(slippage_tolerance_bps=bps)
        logger.info(f"Slippage tolerance updated: {previous} -> {bps} bps")
        return VaultEvent(EventType.SLIPPAGE_UPDATED, caller, {"old": previous, "new": bps})

    async def transfer_ownership(
        self, repo: LedgerRepository, caller: str, new_owner: Optional[str]
    ) -> VaultEvent:
        """Persist ``new_owner``.

        The in-memory owner changes only after the caller's unit of work
        commits (see ``Vault.transfer_ownership``).
        """
        self.access.require_owner(caller)
        if not new_owner or not new_owner.strip():
            raise InvalidReference("owner")

        previous = self.access.owner
        await repo.update_state(owner=new_owner)
        logger.info(f"Ownership transferred: {previous} -> {new_owner}")
        return VaultEvent(
            EventType.OWNERSHIP_TRANSFERRED, caller, {"old": previous, "new": new_owner}
        )
