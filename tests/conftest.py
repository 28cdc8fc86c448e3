"""Pytest configuration and fixtures."""

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DRY_RUN"] = "true"
os.environ["ADMIN_TOKEN"] = ""
os.environ["DEBUG"] = "false"

from stablevault.ledger.database import create_session_factory, create_tables
from stablevault.ledger.repository import LedgerRepository
from stablevault.oracle.dry_run import SimulatedPriceFeed
from stablevault.routing.dry_run import SimulatedExchange
from stablevault.transfers.memory import InMemoryAssetBook
from stablevault.utils.locks import clear_vault_locks
from stablevault.vault import Vault

NOW = 1_700_000_000

OWNER = "owner"
ALICE = "alice"
BOB = "bob"

ONE_NATIVE = 10**18
NATIVE_PRICE = 2000 * 10**8  # 2000.00000000

LIMIT_PER_TX = 10_000 * 10**6
BANK_CAP = 100_000 * 10**6


class FakeClock:
    """Settable time source."""

    def __init__(self, now: int = NOW):
        self.now = now

    def __call__(self) -> float:
        return float(self.now)

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def ledger_repo(db_session: AsyncSession) -> LedgerRepository:
    """Create ledger repository for testing."""
    return LedgerRepository(db_session)


@pytest.fixture
def book() -> InMemoryAssetBook:
    return InMemoryAssetBook(vault_address="vault", native_asset="NATIVE")


@pytest.fixture
def feed(clock) -> SimulatedPriceFeed:
    return SimulatedPriceFeed(price=NATIVE_PRICE, decimals=8, clock=clock)


@pytest.fixture
def exchange(book, clock) -> SimulatedExchange:
    return SimulatedExchange(book, fee_bps=30, clock=clock)


@pytest.fixture
def feed_factory(clock):
    """Resolves references to fresh simulated feeds."""

    def factory(reference: str) -> SimulatedPriceFeed:
        return SimulatedPriceFeed(price=NATIVE_PRICE, decimals=8, clock=clock, name=reference)

    return factory


@pytest_asyncio.fixture
async def vault(session_factory, feed, exchange, book, clock, feed_factory) -> Vault:
    """Bootstrapped vault over in-memory collaborators."""
    clear_vault_locks()
    v = Vault(
        session_factory,
        feed=feed,
        exchange=exchange,
        transfers=book,
        native_asset="NATIVE",
        native_decimals=18,
        unit_of_account="USDC",
        bridge_asset="WNATIVE",
        feed_factory=feed_factory,
        clock=clock,
    )
    await v.bootstrap(
        owner=OWNER,
        limit_per_tx=LIMIT_PER_TX,
        bank_cap=BANK_CAP,
        slippage_tolerance_bps=300,
        price_feed_reference=feed.reference,
    )
    return v


@pytest.fixture
def fund(book: InMemoryAssetBook):
    """Give a holder funds and let the vault pull them."""

    def _fund(holder: str, asset: str, amount: int, authorize: bool = True) -> None:
        book.mint(holder, asset, amount)
        if authorize and asset != book.native_asset:
            book.authorize(holder, book.vault_address, asset, amount)

    return _fund
