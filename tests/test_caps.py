"""Tests for limit and bank cap enforcement."""

import pytest

from stablevault.caps import CapEnforcer, HoldingsValuation
from stablevault.errors import BankCapExceeded, ExceedsPerTxLimit, StalePrice
from stablevault.oracle import PriceOracleAdapter


@pytest.fixture
def valuation(book, feed, clock) -> HoldingsValuation:
    oracle = PriceOracleAdapter(feed, clock=clock)
    return HoldingsValuation(book, oracle, "NATIVE", 18, "USDC")


@pytest.fixture
def caps(valuation) -> CapEnforcer:
    # 1,000.000000 per operation, 5,000.000000 overall
    return CapEnforcer(1_000_000_000, 5_000_000_000, valuation)


class TestHoldingsValuation:
    """Bank value in the accounting unit."""

    @pytest.mark.asyncio
    async def test_empty_vault(self, valuation):
        assert await valuation.total_value() == 0

    @pytest.mark.asyncio
    async def test_native_and_unit_holdings(self, valuation, book):
        book.mint("vault", "NATIVE", 10**18)
        book.mint("vault", "USDC", 500_000_000)

        assert await valuation.total_value() == 2_500_000_000

    @pytest.mark.asyncio
    async def test_other_assets_not_counted(self, valuation, book):
        book.mint("vault", "DAI", 10**21)
        assert await valuation.total_value() == 0

    @pytest.mark.asyncio
    async def test_stale_price_propagates(self, valuation, clock):
        clock.advance(4000)
        with pytest.raises(StalePrice):
            await valuation.total_value()


class TestCapEnforcer:
    """Per-operation limit and bank cap."""

    def test_within_tx_limit(self, caps):
        caps.check_tx_limit(1_000_000_000)

    def test_exceeds_tx_limit(self, caps):
        with pytest.raises(ExceedsPerTxLimit) as exc_info:
            caps.check_tx_limit(1_000_000_001)

        assert exc_info.value.requested == 1_000_000_001
        assert exc_info.value.limit == 1_000_000_000

    @pytest.mark.asyncio
    async def test_bank_cap_projection(self, caps, book):
        book.mint("vault", "USDC", 4_500_000_000)

        projected = await caps.check_bank_cap(500_000_000)

        assert projected == 5_000_000_000

    @pytest.mark.asyncio
    async def test_bank_cap_exceeded(self, caps, book):
        book.mint("vault", "USDC", 4_500_000_000)

        with pytest.raises(BankCapExceeded):
            await caps.check_bank_cap(500_000_001)

    @pytest.mark.asyncio
    async def test_precomputed_holdings(self, caps):
        with pytest.raises(BankCapExceeded):
            await caps.check_bank_cap(1, current=5_000_000_000)

    @pytest.mark.asyncio
    async def test_tx_limit_checked_first(self, caps, book):
        book.mint("vault", "USDC", 5_000_000_000)

        with pytest.raises(ExceedsPerTxLimit):
            await caps.check(2_000_000_000)
