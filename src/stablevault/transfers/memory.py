"""In-memory asset book for dry-run mode and tests.

Tracks raw balances per (holder, asset) and spending authority per
(owner, spender, asset). Recipients may register an async hook that is
awaited after they receive funds, which mimics a transfer callback. A hook
that raises reverts the transfer it was called from.
"""

import logging
from collections import defaultdict
from typing import Awaitable, Callable, Optional

from stablevault.transfers.base import AssetTransfer

logger = logging.getLogger(__name__)

TransferHook = Callable[[str, int], Awaitable[None]]


class InMemoryAssetBook(AssetTransfer):
    """Simulated custody layer."""

    def __init__(self, vault_address: str = "vault", native_asset: str = "NATIVE"):
        self._vault_address = vault_address
        self.native_asset = native_asset
        self._balances: dict[tuple[str, str], int] = defaultdict(int)
        self._allowances: dict[tuple[str, str, str], int] = defaultdict(int)
        self._hooks: dict[str, TransferHook] = {}
        self.fail_outbound = False

    @property
    def vault_address(self) -> str:
        return self._vault_address

    # Book management
    def mint(self, holder: str, asset: str, amount: int) -> None:
        self._balances[(holder, asset)] += amount

    def balance(self, holder: str, asset: str) -> int:
        return self._balances.get((holder, asset), 0)

    def allowance(self, owner: str, spender: str, asset: str) -> int:
        return self._allowances.get((owner, spender, asset), 0)

    def authorize(self, owner: str, spender: str, asset: str, amount: int) -> None:
        """Grant ``spender`` authority over ``owner``'s asset."""
        self._allowances[(owner, spender, asset)] = amount

    def set_hook(self, recipient: str, hook: Optional[TransferHook]) -> None:
        if hook is None:
            self._hooks.pop(recipient, None)
        else:
            self._hooks[recipient] = hook

    def _move(self, asset: str, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0 or self.balance(sender, asset) < amount:
            logger.debug(f"Transfer rejected: {sender} has {self.balance(sender, asset)} {asset}")
            return False
        self._balances[(sender, asset)] -= amount
        self._balances[(recipient, asset)] += amount
        return True

    async def _notify(self, sender: str, recipient: str, asset: str, amount: int) -> None:
        """Run the recipient hook; if it raises, move the funds back and re-raise."""
        hook = self._hooks.get(recipient)
        if hook is None:
            return
        try:
            await hook(asset, amount)
        except Exception as e:
            logger.debug(f"Hook of {recipient} failed ({type(e).__name__}); reverting transfer")
            self._balances[(recipient, asset)] -= amount
            self._balances[(sender, asset)] += amount
            raise

    async def transfer_from(
        self, asset: str, owner: str, spender: str, recipient: str, amount: int
    ) -> bool:
        """Move funds on behalf of ``owner`` using ``spender``'s authority."""
        if self.allowance(owner, spender, asset) < amount:
            logger.debug(f"Allowance too low: {owner} -> {spender} {asset}")
            return False
        if not self._move(asset, owner, recipient, amount):
            return False
        self._allowances[(owner, spender, asset)] -= amount
        try:
            await self._notify(owner, recipient, asset, amount)
        except Exception:
            self._allowances[(owner, spender, asset)] += amount
            raise
        return True

    # AssetTransfer
    async def transfer_in(self, asset: str, sender: str, amount: int) -> bool:
        if asset == self.native_asset:
            # Native value travels with the call, no authorization needed
            return self._move(asset, sender, self._vault_address, amount)
        return await self.transfer_from(
            asset, sender, self._vault_address, self._vault_address, amount
        )

    async def transfer_out(self, asset: str, recipient: str, amount: int) -> bool:
        if self.fail_outbound:
            return False
        if not self._move(asset, self._vault_address, recipient, amount):
            return False
        await self._notify(self._vault_address, recipient, asset, amount)
        return True

    async def approve(self, asset: str, spender: str, amount: int) -> bool:
        self.authorize(self._vault_address, spender, asset, amount)
        return True

    async def balance_of(self, asset: str) -> int:
        return self.balance(self._vault_address, asset)
