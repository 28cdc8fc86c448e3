"""Repository for ledger operations."""

import json
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from stablevault.errors import InsufficientBalance
from stablevault.events import EventType, VaultEvent
from stablevault.ledger.models import AssetClass, Balance, VaultEventRecord, VaultState

STATE_ROW_ID = 1


class VaultNotInitialized(RuntimeError):
    """Raised when vault state is read before bootstrap."""


class LedgerRepository:
    """Repository for all ledger-related database operations.

    Mutations only flush; committing is the caller's unit of work.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # Balance operations
    async def get_balance(self, depositor: str, asset_class: AssetClass) -> Optional[Balance]:
        """Get depositor balance for an asset class."""
        stmt = select(Balance).where(
            Balance.depositor == depositor, Balance.asset_class == AssetClass(asset_class).value
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create_balance(self, depositor: str, asset_class: AssetClass) -> Balance:
        """Get or create a zero balance record."""
        balance = await self.get_balance(depositor, asset_class)
        if balance is None:
            balance = Balance(
                depositor=depositor, asset_class=AssetClass(asset_class).value, amount=0
            )
            self.session.add(balance)
            await self.session.flush()
        return balance

    async def balance_amount(self, depositor: str, asset_class: AssetClass) -> int:
        balance = await self.get_balance(depositor, asset_class)
        return balance.amount if balance is not None else 0

    async def get_all_balances(self, depositor: str) -> list[Balance]:
        """Get all balances for a depositor."""
        stmt = (
            select(Balance).where(Balance.depositor == depositor).order_by(Balance.asset_class)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def credit(self, depositor: str, asset_class: AssetClass, amount: int) -> Balance:
        """Add amount to a balance. Callers validate limits beforehand."""
        if amount < 0:
            raise ValueError(f"Credit amount must be non-negative, got {amount}")
        balance = await self.get_or_create_balance(depositor, asset_class)
        balance.amount += amount
        await self.session.flush()
        return balance

    async def debit(self, depositor: str, asset_class: AssetClass, amount: int) -> Balance:
        """Subtract amount from a balance.

        Raises:
            InsufficientBalance: If amount exceeds the current balance
        """
        if amount < 0:
            raise ValueError(f"Debit amount must be non-negative, got {amount}")
        balance = await self.get_or_create_balance(depositor, asset_class)
        if amount > balance.amount:
            raise InsufficientBalance(balance.amount, amount)
        balance.amount -= amount
        await self.session.flush()
        return balance

    async def total_of(self, depositor: str) -> int:
        """Sum of a depositor's balances across asset classes."""
        stmt = select(func.coalesce(func.sum(Balance.amount), 0)).where(
            Balance.depositor == depositor
        )
        return int(await self.session.scalar(stmt))

    async def class_totals(self) -> dict[AssetClass, int]:
        """Ledger liabilities per asset class."""
        stmt = select(Balance.asset_class, func.sum(Balance.amount)).group_by(Balance.asset_class)
        result = await self.session.execute(stmt)
        totals = {cls: 0 for cls in AssetClass}
        for asset_class, total in result.all():
            totals[AssetClass(asset_class)] = int(total or 0)
        return totals

    # Vault state
    async def find_state(self) -> Optional[VaultState]:
        return await self.session.get(VaultState, STATE_ROW_ID)

    async def get_state(self) -> VaultState:
        state = await self.find_state()
        if state is None:
            raise VaultNotInitialized("Vault state missing; call Vault.bootstrap() first")
        return state

    async def create_state(
        self,
        owner: str,
        limit_per_tx: int,
        bank_cap: int,
        slippage_tolerance_bps: int,
        price_feed_reference: str,
    ) -> VaultState:
        state = VaultState(
            id=STATE_ROW_ID,
            owner=owner,
            limit_per_tx=limit_per_tx,
            bank_cap=bank_cap,
            slippage_tolerance_bps=slippage_tolerance_bps,
            price_feed_reference=price_feed_reference,
            deposit_count=0,
            withdrawal_count=0,
        )
        self.session.add(state)
        await self.session.flush()
        return state

    async def increment_deposit_count(self) -> int:
        state = await self.get_state()
        state.deposit_count += 1
        await self.session.flush()
        return state.deposit_count

    async def increment_withdrawal_count(self) -> int:
        state = await self.get_state()
        state.withdrawal_count += 1
        await self.session.flush()
        return state.withdrawal_count

    async def update_state(self, **fields) -> VaultState:
        """Update mutable state fields (slippage, feed reference, owner)."""
        allowed = {"slippage_tolerance_bps", "price_feed_reference", "owner"}
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Immutable or unknown vault state fields: {sorted(unknown)}")
        state = await self.get_state()
        for name, value in fields.items():
            setattr(state, name, value)
        await self.session.flush()
        return state

    # Audit trail
    async def record_event(self, event: VaultEvent) -> VaultEventRecord:
        record = VaultEventRecord(
            event_type=event.event_type.value,
            actor=event.actor,
            payload=json.dumps(event.payload(), sort_keys=True),
            created_at=event.created_at,
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_events(
        self,
        limit: int = 50,
        offset: int = 0,
        event_type: Optional[EventType] = None,
        actor: Optional[str] = None,
    ) -> list[VaultEventRecord]:
        """Get audit events, newest first."""
        stmt = select(VaultEventRecord)
        if event_type is not None:
            stmt = stmt.where(VaultEventRecord.event_type == EventType(event_type).value)
        if actor is not None:
            stmt = stmt.where(VaultEventRecord.actor == actor)
        stmt = stmt.order_by(VaultEventRecord.id.desc()).limit(limit).offset(offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
