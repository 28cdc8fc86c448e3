"""Component tests for the guard, locks, events and error types."""

import asyncio

import pytest

from stablevault.errors import ExceedsPerTxLimit, ReentrancyAttempt, StalePrice, SwapFailed
from stablevault.events import EventType, VaultEvent, swap_event
from stablevault.guard import ReentrancyGuard
from stablevault.routing import SwapPath, SwapQuote
from stablevault.utils.locks import (
    LockTimeoutError,
    clear_vault_locks,
    get_vault_lock,
    vault_operation_lock,
)


class TestReentrancyGuard:
    """Tests for the non-waiting reentrancy guard."""

    @pytest.mark.asyncio
    async def test_hold_and_release(self):
        guard = ReentrancyGuard()

        async with guard.hold("deposit_native"):
            assert guard.locked
            assert guard.active_operation == "deposit_native"

        assert not guard.locked

    @pytest.mark.asyncio
    async def test_nested_hold_rejected(self):
        guard = ReentrancyGuard()

        async with guard.hold("withdraw_native"):
            with pytest.raises(ReentrancyAttempt):
                async with guard.hold("deposit_native"):
                    pass
            # Rejected attempt leaves the outer hold intact
            assert guard.active_operation == "withdraw_native"

        assert not guard.locked

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        guard = ReentrancyGuard()

        with pytest.raises(RuntimeError):
            async with guard.hold("deposit_native"):
                raise RuntimeError("boom")

        assert not guard.locked


class TestVaultLocks:
    """Tests for the concurrency locks module."""

    @pytest.fixture(autouse=True)
    def setup(self):
        """Clear locks before each test."""
        clear_vault_locks()

    @pytest.mark.asyncio
    async def test_same_key_same_lock(self):
        assert get_vault_lock("vault") is get_vault_lock("vault")
        assert get_vault_lock("vault") is not get_vault_lock("other")

    @pytest.mark.asyncio
    async def test_lock_released_after_context(self):
        async with vault_operation_lock("vault", operation="test"):
            assert get_vault_lock("vault").locked()

        assert not get_vault_lock("vault").locked()

    @pytest.mark.asyncio
    async def test_operations_serialized(self):
        order = []

        async def operation(name: str):
            async with vault_operation_lock("vault", operation=name):
                order.append(f"{name}-start")
                await asyncio.sleep(0.01)
                order.append(f"{name}-end")

        await asyncio.gather(operation("a"), operation("b"))

        assert order in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    @pytest.mark.asyncio
    async def test_timeout(self):
        async with vault_operation_lock("vault"):
            with pytest.raises(LockTimeoutError):
                async with vault_operation_lock("vault", timeout=0.05):
                    pass

        assert not get_vault_lock("vault").locked()

    @pytest.mark.asyncio
    async def test_released_on_error(self):
        with pytest.raises(ValueError):
            async with vault_operation_lock("vault"):
                raise ValueError("boom")

        assert not get_vault_lock("vault").locked()


class TestEvents:
    """Tests for audit event payloads."""

    def test_swap_event_carries_quote(self):
        quote = SwapQuote(
            path=SwapPath(("LINK", "WNATIVE", "USDC")),
            amount_in=10**19,
            expected_out=149_101_350,
            min_out=144_628_309,
            actual_out=149_101_350,
            deadline=1_700_000_300,
            slippage_bps=300,
        )

        event = swap_event("alice", quote)

        assert event.event_type == EventType.SWAP_EXECUTED
        assert event.payload() == {
            "asset_in": "LINK",
            "asset_out": "USDC",
            "path": ["LINK", "WNATIVE", "USDC"],
            "amount_in": str(10**19),
            "expected_out": "149101350",
            "min_out": "144628309",
            "actual_out": "149101350",
            "deadline": "1700000300",
            "slippage_bps": "300",
        }

    def test_booleans_untouched(self):
        event = VaultEvent(EventType.FEED_UPDATED, "owner", {"flag": True})
        assert event.payload() == {"flag": True}


class TestErrors:
    """Tests for error serialization."""

    def test_limit_error_context(self):
        error = ExceedsPerTxLimit(12_000_000_000, 10_000_000_000)

        data = error.to_dict()

        assert data["error"] == "exceeds_per_tx_limit"
        assert data["context"] == {"requested": "12000000000", "limit": "10000000000"}

    def test_stale_price_context(self):
        error = StalePrice("price older than staleness window", elapsed=4000)

        assert error.code == "stale_price"
        assert error.context["elapsed_seconds"] == 4000

    def test_boolean_context_untouched(self):
        error = SwapFailed("exchange rejected", retryable=False, hops=2)

        assert error.to_dict()["context"] == {
            "reason": "exchange rejected",
            "retryable": False,
            "hops": "2",
        }
