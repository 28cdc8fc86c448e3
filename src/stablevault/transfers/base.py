"""Abstract asset transfer interface.

The vault never moves asset units itself. It asks the custody layer to pull
funds from a depositor (with prior authorization), push funds out, grant a
spender authority, and report the vault's holdings. Every call reports
success or failure.
"""

from abc import ABC, abstractmethod


class AssetTransfer(ABC):
    """Custody-layer capability used by the vault."""

    @property
    @abstractmethod
    def vault_address(self) -> str:
        """Identity holding the vault's assets."""
        pass

    @abstractmethod
    async def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        """Pull ``amount`` of ``asset`` from ``sender`` into the vault."""
        pass

    @abstractmethod
    async def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        """Send ``amount`` of ``asset`` from the vault to ``recipient``."""
        pass

    @abstractmethod
    async def approve(self, asset: str, spender: str, amount: int) -> bool:
        """Set the spending authority of ``spender`` over the vault's ``asset``."""
        pass

    @abstractmethod
    async def balance_of(self, asset: str) -> int:
        """Raw units of ``asset`` held by the vault."""
        pass
