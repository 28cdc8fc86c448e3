"""Per-operation limit and bank capacity enforcement."""

import logging
from typing import Optional

from stablevault.errors import BankCapExceeded, ExceedsPerTxLimit
from stablevault.oracle.adapter import PriceOracleAdapter
from stablevault.oracle.base import Price
from stablevault.transfers.base import AssetTransfer
from stablevault.units import to_unit_of_account

logger = logging.getLogger(__name__)


class HoldingsValuation:
    """Values the vault's holdings in the accounting unit.

    Native holdings are converted at the reference price; unit-of-account
    holdings count at face value.
    """

    def __init__(
        self,
        transfers: AssetTransfer,
        oracle: PriceOracleAdapter,
        native_asset: str,
        native_decimals: int,
        unit_of_account: str,
    ):
        self.transfers = transfers
        self.oracle = oracle
        self.native_asset = native_asset
        self.native_decimals = native_decimals
        self.unit_of_account = unit_of_account

    def native_to_units(self, amount: int, price: Price) -> int:
        return to_unit_of_account(amount, self.native_decimals, price.value, price.decimals)

    async def total_value(self, price: Optional[Price] = None) -> int:
        """Current bank value; fetches the price when none is supplied."""
        if price is None:
            price = await self.oracle.require_price()
        native_held = await self.transfers.balance_of(self.native_asset)
        unit_held = await self.transfers.balance_of(self.unit_of_account)
        return self.native_to_units(native_held, price) + unit_held


class CapEnforcer:
    """Advisory gates evaluated before any ledger mutation. Never mutates state."""

    def __init__(self, limit_per_tx: int, bank_cap: int, valuation: HoldingsValuation):
        self.limit_per_tx = limit_per_tx
        self.bank_cap = bank_cap
        self.valuation = valuation

    def check_tx_limit(self, normalized_amount: int) -> None:
        if normalized_amount > self.limit_per_tx:
            logger.warning(f"Per-operation limit hit: {normalized_amount} > {self.limit_per_tx}")
            raise ExceedsPerTxLimit(normalized_amount, self.limit_per_tx)

    async def check_bank_cap(
        self,
        normalized_amount: int,
        price: Optional[Price] = None,
        current: Optional[int] = None,
    ) -> int:
        """Validate holdings + pending amount against the cap.

        Args:
            normalized_amount: Pending amount in the accounting unit
            price: Reference price to value native holdings with
            current: Pre-computed holdings value, skips the valuation

        Returns:
            The projected total
        """
        if current is None:
            current = await self.valuation.total_value(price)
        projected = current + normalized_amount
        if projected > self.bank_cap:
            logger.warning(f"Bank cap hit: {projected} > {self.bank_cap}")
            raise BankCapExceeded(projected, self.bank_cap)
        return projected

    async def check(
        self,
        normalized_amount: int,
        price: Optional[Price] = None,
        current: Optional[int] = None,
    ) -> int:
        """Per-operation limit, then bank cap."""
        self.check_tx_limit(normalized_amount)
        return await self.check_bank_cap(normalized_amount, price, current)
