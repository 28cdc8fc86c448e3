"""Tests for ledger repository and unit of work."""

import json

import pytest
from sqlalchemy.exc import IntegrityError

from stablevault.errors import InsufficientBalance
from stablevault.events import EventType, VaultEvent, deposit_event
from stablevault.ledger import AssetClass, LedgerRepository, VaultNotInitialized, unit_of_work


async def _init_state(repo: LedgerRepository):
    return await repo.create_state(
        owner="owner",
        limit_per_tx=1_000,
        bank_cap=10_000,
        slippage_tolerance_bps=300,
        price_feed_reference="dry-run",
    )


class TestBalances:
    """Tests for balance operations."""

    @pytest.mark.asyncio
    async def test_missing_balance_is_zero(self, ledger_repo):
        assert await ledger_repo.balance_amount("alice", AssetClass.NATIVE) == 0

    @pytest.mark.asyncio
    async def test_credit_and_debit(self, ledger_repo):
        await ledger_repo.credit("alice", AssetClass.NATIVE, 500)
        await ledger_repo.credit("alice", AssetClass.NATIVE, 250)
        balance = await ledger_repo.debit("alice", AssetClass.NATIVE, 100)

        assert balance.amount == 650

    @pytest.mark.asyncio
    async def test_classes_are_independent(self, ledger_repo):
        await ledger_repo.credit("alice", AssetClass.NATIVE, 500)
        await ledger_repo.credit("alice", AssetClass.UNIT_OF_ACCOUNT, 300)

        assert await ledger_repo.balance_amount("alice", AssetClass.NATIVE) == 500
        assert await ledger_repo.balance_amount("alice", AssetClass.UNIT_OF_ACCOUNT) == 300
        assert await ledger_repo.total_of("alice") == 800
        assert len(await ledger_repo.get_all_balances("alice")) == 2

    @pytest.mark.asyncio
    async def test_debit_more_than_balance(self, ledger_repo):
        await ledger_repo.credit("alice", AssetClass.NATIVE, 500)

        with pytest.raises(InsufficientBalance) as exc_info:
            await ledger_repo.debit("alice", AssetClass.NATIVE, 600)

        assert exc_info.value.balance == 500
        assert exc_info.value.requested == 600
        assert await ledger_repo.balance_amount("alice", AssetClass.NATIVE) == 500

    @pytest.mark.asyncio
    async def test_debit_without_balance(self, ledger_repo):
        with pytest.raises(InsufficientBalance):
            await ledger_repo.debit("bob", AssetClass.UNIT_OF_ACCOUNT, 1)

    @pytest.mark.asyncio
    async def test_negative_amounts_rejected(self, ledger_repo):
        with pytest.raises(ValueError):
            await ledger_repo.credit("alice", AssetClass.NATIVE, -1)
        with pytest.raises(ValueError):
            await ledger_repo.debit("alice", AssetClass.NATIVE, -1)

    @pytest.mark.asyncio
    async def test_class_totals(self, ledger_repo):
        await ledger_repo.credit("alice", AssetClass.NATIVE, 500)
        await ledger_repo.credit("bob", AssetClass.NATIVE, 100)
        await ledger_repo.credit("bob", AssetClass.UNIT_OF_ACCOUNT, 40)

        totals = await ledger_repo.class_totals()

        assert totals == {AssetClass.NATIVE: 600, AssetClass.UNIT_OF_ACCOUNT: 40}


class TestVaultState:
    """Tests for the single-row vault state."""

    @pytest.mark.asyncio
    async def test_state_missing(self, ledger_repo):
        assert await ledger_repo.find_state() is None
        with pytest.raises(VaultNotInitialized):
            await ledger_repo.get_state()

    @pytest.mark.asyncio
    async def test_counters(self, ledger_repo):
        await _init_state(ledger_repo)

        assert await ledger_repo.increment_deposit_count() == 1
        assert await ledger_repo.increment_deposit_count() == 2
        assert await ledger_repo.increment_withdrawal_count() == 1

    @pytest.mark.asyncio
    async def test_update_mutable_fields(self, ledger_repo):
        await _init_state(ledger_repo)

        state = await ledger_repo.update_state(slippage_tolerance_bps=50, owner="carol")

        assert state.slippage_tolerance_bps == 50
        assert state.owner == "carol"

    @pytest.mark.asyncio
    async def test_limits_are_immutable(self, ledger_repo):
        await _init_state(ledger_repo)

        with pytest.raises(ValueError):
            await ledger_repo.update_state(bank_cap=1)

        state = await ledger_repo.get_state()
        assert state.bank_cap == 10_000


class TestEvents:
    """Tests for the audit trail."""

    @pytest.mark.asyncio
    async def test_record_and_filter(self, ledger_repo):
        await ledger_repo.record_event(deposit_event("alice", "NATIVE", 10**18, 2_000_000_000))
        await ledger_repo.record_event(
            VaultEvent(EventType.SLIPPAGE_UPDATED, "owner", {"old": 300, "new": 100})
        )

        events = await ledger_repo.get_events()
        assert [e.event_type for e in events] == ["slippage_updated", "deposit"]

        deposits = await ledger_repo.get_events(event_type=EventType.DEPOSIT)
        assert len(deposits) == 1
        payload = json.loads(deposits[0].payload)
        assert payload["normalized_amount"] == "2000000000"
        assert payload["raw_amount"] == str(10**18)

        assert len(await ledger_repo.get_events(actor="owner")) == 1


class TestUnitOfWork:
    """All-or-nothing transactions."""

    @pytest.mark.asyncio
    async def test_commit(self, session_factory):
        async with unit_of_work(session_factory) as session:
            await LedgerRepository(session).credit("alice", AssetClass.NATIVE, 100)

        async with unit_of_work(session_factory) as session:
            assert await LedgerRepository(session).balance_amount("alice", AssetClass.NATIVE) == 100

    @pytest.mark.asyncio
    async def test_rollback_on_error(self, session_factory):
        with pytest.raises(RuntimeError):
            async with unit_of_work(session_factory) as session:
                repo = LedgerRepository(session)
                await repo.credit("alice", AssetClass.NATIVE, 100)
                raise RuntimeError("abort")

        async with unit_of_work(session_factory) as session:
            assert await LedgerRepository(session).balance_amount("alice", AssetClass.NATIVE) == 0

    @pytest.mark.asyncio
    async def test_non_negative_constraint(self, session_factory):
        with pytest.raises(IntegrityError):
            async with unit_of_work(session_factory) as session:
                balance = await LedgerRepository(session).get_or_create_balance(
                    "alice", AssetClass.NATIVE
                )
                balance.amount = -1
                await session.flush()
