"""
Test fixtures for RiskCover.

Provides:
- In-memory SQLite engine per test (all sessions share one connection)
- ManualClock for driving time explicitly
- InsuranceService wired to both
- A bootstrapped protocol: admin, treasury, funded user accounts
- make_actor / make_pool factories
"""

from dataclasses import dataclass

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from riskcover.config import Settings
from riskcover.db.engine import create_tables, make_session_factory
from riskcover.db.keys import pool_key
from riskcover.schemas.common import PoolType
from riskcover.services.insurance import InsuranceService

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

MINT = "USDC"
ADMIN = "admin"
TREASURY = "treasury-usdc"
START_TIME = 1_700_000_000
DAY = 86_400


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: int = START_TIME):
        self.current = start

    def now(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds

    def advance_days(self, days: int) -> None:
        self.current += days * DAY


@dataclass
class Actor:
    """A test participant and their token account."""
    name: str
    account: str


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(DATABASE_URL=TEST_DB_URL, LOG_LEVEL="WARNING")


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory database with all tables."""
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def service(session_factory, clock, test_settings) -> InsuranceService:
    return InsuranceService(session_factory, clock=clock, settings=test_settings)


# ── Bootstrapped protocol ─────────────────────────────────────────────


@pytest_asyncio.fixture
async def initialized(service) -> InsuranceService:
    """Protocol state initialized by ADMIN with a 500 bps fee."""
    await service.open_account(TREASURY, ADMIN, MINT)
    await service.initialize_protocol(ADMIN, 500, TREASURY)
    return service


@pytest.fixture
def make_actor(initialized):
    """Factory: open a token account owned by `name` and mint into it."""

    async def _make(name: str, amount: int = 0, mint: str = MINT) -> Actor:
        address = f"{name}-{mint.lower()}"
        await initialized.open_account(address, name, mint)
        if amount:
            await initialized.mint_to(address, amount)
        return Actor(name=name, account=address)

    return _make


@pytest.fixture
def make_pool(initialized):
    """Factory: open a pool-owned token account and initialize the pool."""

    async def _make(pool_type: PoolType = PoolType.MEDIUM, yield_rate_bps: int = 0, signer: str = ADMIN):
        account = f"pool-{pool_type.value}-{MINT.lower()}"
        await initialized.open_account(account, pool_key(pool_type), MINT)
        return await initialized.initialize_pool(signer, pool_type, yield_rate_bps, MINT, account)

    return _make


@pytest_asyncio.fixture
async def protocol(initialized):
    """A registered protocol (TVL 10M) at the default risk score of 50."""
    return await initialized.register_protocol("lender-dao", "Lender", 10_000_000)


@pytest_asyncio.fixture
async def medium_pool(make_pool):
    return await make_pool(PoolType.MEDIUM)


@pytest_asyncio.fixture
async def alice(make_actor) -> Actor:
    return await make_actor("alice", 1_000)


@pytest_asyncio.fixture
async def bob(make_actor) -> Actor:
    return await make_actor("bob", 10_000)
