"""Custodial value-normalization vault.

Flow of a contribution:
1. Reentrancy guard acquired
2. Unit of work (database transaction) opened
3. Value normalized: face value (unit of account), oracle price
   (native asset) or swap output (any other asset)
4. Per-operation limit and bank cap checked
5. Funds pulled, ledger credited, counters and audit events written
6. Commit, guard released, observers notified

Any failure in steps 3-5 rolls the transaction back. Funds are only pulled
after the up-front checks pass; a swap failure after the pull refunds the
depositor. Withdrawals debit first and transfer out last, so a failed
transfer rolls the debit back.
"""

import inspect
import logging
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stablevault.admin import AccessControl, AdminConfig
from stablevault.caps import CapEnforcer, HoldingsValuation
from stablevault.errors import (
    AssetTransferFailed,
    InvalidAddress,
    UnrecognizedCall,
    VaultError,
    ZeroAmount,
)
from stablevault.events import VaultEvent, deposit_event, swap_event, withdrawal_event
from stablevault.guard import ReentrancyGuard
from stablevault.ledger.database import unit_of_work
from stablevault.ledger.models import AssetClass, VaultEventRecord
from stablevault.ledger.repository import LedgerRepository, VaultNotInitialized
from stablevault.oracle.adapter import PriceOracleAdapter
from stablevault.oracle.base import PriceFeed, PriceResult
from stablevault.routing.adapter import SwapRouterAdapter
from stablevault.routing.base import Exchange
from stablevault.transfers.base import AssetTransfer
from stablevault.units import MAX_SLIPPAGE_BPS, format_units

logger = logging.getLogger(__name__)

EventCallback = Callable[[VaultEvent], Any]


@dataclass(frozen=True)
class VaultLimits:
    """Immutable limits in the accounting unit."""

    limit_per_tx: int
    bank_cap: int


class Vault:
    """Accounting-and-conversion engine behind every public operation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: PriceFeed,
        exchange: Exchange,
        transfers: AssetTransfer,
        native_asset: str = "NATIVE",
        native_decimals: int = 18,
        unit_of_account: str = "USDC",
        bridge_asset: str = "WNATIVE",
        accept_plain_transfers: bool = True,
        feed_factory: Optional[Callable[[str], PriceFeed]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory
        self.transfers = transfers
        self.native_asset = native_asset
        self.native_decimals = native_decimals
        self.unit_of_account = unit_of_account
        self.bridge_asset = bridge_asset
        self.accept_plain_transfers = accept_plain_transfers
        self._feed_factory = feed_factory

        self.oracle = PriceOracleAdapter(feed, clock=clock)
        self.router = SwapRouterAdapter(
            exchange,
            transfers,
            unit_of_account=unit_of_account,
            bridge_asset=bridge_asset,
            slippage_bps=lambda: self.slippage_tolerance_bps,
            clock=clock,
        )
        self.valuation = HoldingsValuation(
            transfers, self.oracle, native_asset, native_decimals, unit_of_account
        )
        self._guard = ReentrancyGuard()
        self._on_event: Optional[EventCallback] = None

        # Populated by bootstrap()
        self.access: Optional[AccessControl] = None
        self.admin: Optional[AdminConfig] = None
        self.caps: Optional[CapEnforcer] = None
        self._slippage_bps = 0
        self._feed_reference = feed.reference

    # ======================
    # Lifecycle
    # ======================

    async def bootstrap(
        self,
        owner: str,
        limit_per_tx: int,
        bank_cap: int,
        slippage_tolerance_bps: int = 300,
        price_feed_reference: Optional[str] = None,
    ) -> "Vault":
        """Create persisted state on first run, or load it.

        Limits are written once; later bootstraps keep the stored values.
        """
        if not owner:
            raise InvalidAddress("owner")
        if limit_per_tx <= 0 or bank_cap <= 0:
            raise ValueError("limit_per_tx and bank_cap must be positive")
        if not 0 <= slippage_tolerance_bps <= MAX_SLIPPAGE_BPS:
            raise ValueError(f"slippage_tolerance_bps must be within [0, {MAX_SLIPPAGE_BPS}]")

        async with self._transaction() as repo:
            state = await repo.find_state()
            if state is None:
                state = await repo.create_state(
                    owner=owner,
                    limit_per_tx=limit_per_tx,
                    bank_cap=bank_cap,
                    slippage_tolerance_bps=slippage_tolerance_bps,
                    price_feed_reference=price_feed_reference or self.oracle.feed.reference,
                )
                logger.info(
                    f"Vault initialized: owner={owner} limit_per_tx={format_units(limit_per_tx)} "
                    f"bank_cap={format_units(bank_cap)}"
                )
            elif (state.limit_per_tx, state.bank_cap) != (limit_per_tx, bank_cap):
                logger.warning(
                    "Configured limits differ from stored limits; stored limits are immutable "
                    f"(stored {state.limit_per_tx}/{state.bank_cap}, "
                    f"configured {limit_per_tx}/{bank_cap})"
                )

            self.access = AccessControl(state.owner)
            self.admin = AdminConfig(self.access)
            self.caps = CapEnforcer(state.limit_per_tx, state.bank_cap, self.valuation)
            self._slippage_bps = state.slippage_tolerance_bps
            stored_reference = state.price_feed_reference

        if stored_reference != self.oracle.feed.reference and self._feed_factory is not None:
            self.oracle.set_feed(self._feed_factory(stored_reference))
        self._feed_reference = stored_reference
        return self

    def set_event_callback(self, callback: Optional[EventCallback]) -> None:
        """Set observer notified of each event after its operation commits."""
        self._on_event = callback

    # ======================
    # Internals
    # ======================

    def _require_bootstrapped(self) -> CapEnforcer:
        if self.caps is None:
            raise VaultNotInitialized("Vault.bootstrap() has not been called")
        return self.caps

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[LedgerRepository]:
        async with unit_of_work(self._session_factory) as session:
            yield LedgerRepository(session)

    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[tuple[LedgerRepository, list]]:
        """Guarded all-or-nothing operation collecting audit events."""
        self._require_bootstrapped()
        events: list[VaultEvent] = []
        async with self._guard.hold(name):
            try:
                async with self._transaction() as repo:
                    yield repo, events
                    for event in events:
                        await repo.record_event(event)
            except VaultError as e:
                logger.warning(f"{name} rejected: {e.code}: {e.message}")
                raise
        await self._publish(events)

    async def _publish(self, events: list[VaultEvent]) -> None:
        if self._on_event is None:
            return
        for event in events:
            try:
                result = self._on_event(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Event observer failed for {event.event_type.value}")

    @staticmethod
    def _validate(operation: str, depositor: str, amount: int) -> None:
        if not depositor:
            raise InvalidAddress("depositor")
        if amount <= 0:
            raise ZeroAmount(operation)

    async def _pull(self, asset: str, depositor: str, amount: int) -> None:
        if not await self.transfers.transfer_in(asset, depositor, amount):
            raise AssetTransferFailed(asset, amount, "in")

    async def _push(self, asset: str, recipient: str, amount: int) -> None:
        if not await self.transfers.transfer_out(asset, recipient, amount):
            raise AssetTransferFailed(asset, amount, "out")

    async def _refund(self, asset: str, depositor: str, amount: int) -> None:
        """Return pulled funds after a failure past the point of pulling."""
        if await self.transfers.transfer_out(asset, depositor, amount):
            logger.info(f"Refunded {amount} {asset} to {depositor}")
            return
        logger.critical(f"Refund of {amount} {asset} to {depositor} FAILED; manual action required")
        raise AssetTransferFailed(asset, amount, "refund")

    async def _credit(
        self,
        repo: LedgerRepository,
        events: list,
        depositor: str,
        asset_class: AssetClass,
        asset: str,
        raw_amount: int,
        normalized: int,
    ) -> None:
        await repo.credit(depositor, asset_class, normalized)
        count = await repo.increment_deposit_count()
        events.append(deposit_event(depositor, asset, raw_amount, normalized))
        logger.info(
            f"Deposit #{count}: {depositor} +{format_units(normalized)} ({asset_class.value}) "
            f"from {raw_amount} {asset}"
        )

    async def _deposit_native(
        self, repo: LedgerRepository, events: list, depositor: str, value: int
    ) -> int:
        caps = self._require_bootstrapped()
        price = await self.oracle.require_price()
        normalized = self.valuation.native_to_units(value, price)
        if normalized == 0:
            raise ZeroAmount("deposit_native")
        await caps.check(normalized, price)
        await self._pull(self.native_asset, depositor, value)
        await self._credit(
            repo, events, depositor, AssetClass.NATIVE, self.native_asset, value, normalized
        )
        return normalized

    async def _deposit_unit_of_account(
        self, repo: LedgerRepository, events: list, depositor: str, amount: int
    ) -> int:
        caps = self._require_bootstrapped()
        price = await self.oracle.require_price()
        await caps.check(amount, price)
        await self._pull(self.unit_of_account, depositor, amount)
        await self._credit(
            repo, events, depositor, AssetClass.UNIT_OF_ACCOUNT, self.unit_of_account, amount, amount
        )
        return amount

    async def _deposit_swapped(
        self, repo: LedgerRepository, events: list, depositor: str, asset: str, amount: int
    ) -> int:
        caps = self._require_bootstrapped()
        price = await self.oracle.require_price()
        baseline = await self.valuation.total_value(price)

        # Route and quote before any funds move
        quote = await self.router.prepare(asset, amount)
        await caps.check(quote.min_out, price, current=baseline)

        await self._pull(asset, depositor, amount)
        try:
            executed = await self.router.execute(asset, amount)
        except VaultError:
            await self._refund(asset, depositor, amount)
            raise

        received = executed.actual_out
        try:
            await caps.check(received, price, current=baseline)
        except VaultError:
            await self._refund(self.unit_of_account, depositor, received)
            raise

        events.append(swap_event(depositor, executed))
        await self._credit(
            repo, events, depositor, AssetClass.UNIT_OF_ACCOUNT, asset, amount, received
        )
        return received

    # ======================
    # Deposits
    # ======================

    async def deposit_native(self, depositor: str, value: int) -> int:
        """Deposit native value; credits the oracle-converted amount.

        Returns:
            Normalized amount credited
        """
        async with self._operation("deposit_native") as (repo, events):
            self._validate("deposit_native", depositor, value)
            return await self._deposit_native(repo, events, depositor, value)

    async def deposit_unit_of_account(self, depositor: str, amount: int) -> int:
        """Deposit the unit-of-account asset at face value.

        Requires the depositor to have authorized the vault at the custody layer.
        """
        async with self._operation("deposit_unit_of_account") as (repo, events):
            self._validate("deposit_unit_of_account", depositor, amount)
            return await self._deposit_unit_of_account(repo, events, depositor, amount)

    async def deposit_asset(self, depositor: str, asset: str, amount: int) -> int:
        """Deposit any asset; non unit-of-account assets are swapped first.

        Raises:
            NoRouteAvailable: Before any funds are pulled, if no route exists
            SwapFailed: After refunding the pulled input
        """
        async with self._operation("deposit_asset") as (repo, events):
            if not asset:
                raise InvalidAddress("asset")
            self._validate("deposit_asset", depositor, amount)

            if asset == self.unit_of_account:
                return await self._deposit_unit_of_account(repo, events, depositor, amount)
            if asset == self.native_asset:
                return await self._deposit_native(repo, events, depositor, amount)
            return await self._deposit_swapped(repo, events, depositor, asset, amount)

    async def receive(self, depositor: str, value: int) -> int:
        """Default entry for plain native transfers."""
        if not self.accept_plain_transfers:
            raise UnrecognizedCall("plain native transfers are not accepted")
        return await self.deposit_native(depositor, value)

    async def fallback(self, depositor: str, payload: Any = None) -> None:
        """Any call that matches no operation is rejected."""
        logger.warning(f"Unrecognized call from {depositor!r} rejected")
        raise UnrecognizedCall("call does not match any vault operation")

    # ======================
    # Withdrawals
    # ======================

    async def withdraw_native(self, depositor: str, amount: int) -> int:
        """Withdraw ``amount`` raw native units valued at the live price.

        Returns:
            Normalized amount debited
        """
        async with self._operation("withdraw_native") as (repo, events):
            self._validate("withdraw_native", depositor, amount)
            caps = self._require_bootstrapped()

            price = await self.oracle.require_price()
            normalized = self.valuation.native_to_units(amount, price)
            if normalized == 0:
                raise ZeroAmount("withdraw_native")
            caps.check_tx_limit(normalized)

            await repo.debit(depositor, AssetClass.NATIVE, normalized)
            count = await repo.increment_withdrawal_count()
            events.append(withdrawal_event(depositor, self.native_asset, amount, normalized))

            await self._push(self.native_asset, depositor, amount)
            logger.info(
                f"Withdrawal #{count}: {depositor} -{format_units(normalized)} (native) "
                f"as {amount} {self.native_asset}"
            )
            return normalized

    async def withdraw_unit_of_account(self, depositor: str, amount: int) -> int:
        """Withdraw the unit-of-account asset at face value."""
        async with self._operation("withdraw_unit_of_account") as (repo, events):
            self._validate("withdraw_unit_of_account", depositor, amount)
            caps = self._require_bootstrapped()
            caps.check_tx_limit(amount)

            await repo.debit(depositor, AssetClass.UNIT_OF_ACCOUNT, amount)
            count = await repo.increment_withdrawal_count()
            events.append(withdrawal_event(depositor, self.unit_of_account, amount, amount))

            await self._push(self.unit_of_account, depositor, amount)
            logger.info(
                f"Withdrawal #{count}: {depositor} -{format_units(amount)} (unit_of_account)"
            )
            return amount

    # ======================
    # Administration
    # ======================

    async def set_price_feed_reference(self, caller: str, reference: Optional[str]) -> None:
        """Switch the oracle feed.

        Raises:
            InvalidReference: If the reference is empty or cannot be resolved
                to a feed; the current feed stays in place
        """
        async with self._operation("set_price_feed_reference") as (repo, events):
            events.append(await self.admin.set_price_feed_reference(repo, caller, reference))
            new_feed = self._feed_factory(reference) if self._feed_factory else None
        if new_feed is not None:
            self.oracle.set_feed(new_feed)
        self._feed_reference = reference

    async def set_slippage_tolerance(self, caller: str, bps: int) -> None:
        async with self._operation("set_slippage_tolerance") as (repo, events):
            events.append(await self.admin.set_slippage_tolerance(repo, caller, bps))
        self._slippage_bps = bps

    async def transfer_ownership(self, caller: str, new_owner: Optional[str]) -> None:
        async with self._operation("transfer_ownership") as (repo, events):
            events.append(await self.admin.transfer_ownership(repo, caller, new_owner))
        self.access.transfer_to(new_owner)

    # ======================
    # Reads
    # ======================

    @property
    def limits(self) -> VaultLimits:
        caps = self._require_bootstrapped()
        return VaultLimits(caps.limit_per_tx, caps.bank_cap)

    @property
    def slippage_tolerance_bps(self) -> int:
        return self._slippage_bps

    @property
    def price_feed_reference(self) -> str:
        return self._feed_reference

    @property
    def owner(self) -> Optional[str]:
        return self.access.owner if self.access else None

    @property
    def is_locked(self) -> bool:
        return self._guard.locked

    async def balance_of(self, depositor: str, asset_class: AssetClass) -> int:
        async with self._transaction() as repo:
            return await repo.balance_amount(depositor, asset_class)

    async def total_of(self, depositor: str) -> int:
        async with self._transaction() as repo:
            return await repo.total_of(depositor)

    # Reads that call a collaborator hold the guard, so a transfer hook
    # cannot observe an operation half way through.

    async def total_bank_value(self) -> int:
        """Current holdings in the accounting unit at the live price."""
        async with self._guard.hold("total_bank_value"):
            return await self.valuation.total_value()

    async def check_oracle(self) -> PriceResult:
        """Current oracle reading; never raises on feed failure."""
        async with self._guard.hold("check_oracle"):
            return await self.oracle.get_reference_price()

    async def has_route(self, asset: str) -> bool:
        if asset == self.unit_of_account:
            return True
        async with self._guard.hold("has_route"):
            return await self.router.has_route(asset)

    async def estimate_swap(self, asset: str, amount: int) -> int:
        """Expected unit-of-account output for a deposit of ``asset``; 0 if unroutable."""
        if asset == self.unit_of_account:
            return amount
        async with self._guard.hold("estimate_swap"):
            return await self.router.quote(asset, amount)

    async def deposit_count(self) -> int:
        async with self._transaction() as repo:
            return (await repo.get_state()).deposit_count

    async def withdrawal_count(self) -> int:
        async with self._transaction() as repo:
            return (await repo.get_state()).withdrawal_count

    async def status(self) -> dict:
        """Snapshot for health and admin endpoints."""
        caps = self._require_bootstrapped()
        async with self._guard.hold("status"):
            price_result = await self.oracle.get_reference_price()
            async with self._transaction() as repo:
                state = await repo.get_state()
                liabilities = await repo.class_totals()
                deposit_count, withdrawal_count = state.deposit_count, state.withdrawal_count

            bank_value = None
            if price_result.ok:
                bank_value = await self.valuation.total_value(price_result.price)

        return {
            "owner": self.owner,
            "limit_per_tx": caps.limit_per_tx,
            "bank_cap": caps.bank_cap,
            "slippage_tolerance_bps": self.slippage_tolerance_bps,
            "price_feed_reference": self.price_feed_reference,
            "deposit_count": deposit_count,
            "withdrawal_count": withdrawal_count,
            "liabilities": {cls.value: amount for cls, amount in liabilities.items()},
            "bank_value": bank_value,
            "oracle_ok": price_result.ok,
            "oracle_failure": None if price_result.ok else price_result.failure.value,
        }

    async def events(
        self, limit: int = 50, offset: int = 0, event_type=None, actor: Optional[str] = None
    ) -> list[VaultEventRecord]:
        async with self._transaction() as repo:
            return await repo.get_events(limit, offset, event_type=event_type, actor=actor)
