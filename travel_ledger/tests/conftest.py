"""
Centralized Test Configuration.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from travel_ledger.app.main import app
from travel_ledger.app.db.session import Base
from travel_ledger.app.db.unit_of_work import make_uow_factory
from travel_ledger.app.core.dependencies import get_uow_factory
from travel_ledger.app.domain.posting.engine import PostingEngine
from travel_ledger.app.domain.reports.aggregator import ReportAggregator
from travel_ledger.app.models.enums import AccountType
from travel_ledger.app.services.seeding import seed_database

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Event handler to enable foreign keys for SQLite
@event.listens_for(engine.sync_engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def uow_factory():
    return make_uow_factory(TestingSessionLocal)


@pytest.fixture
def posting_engine(uow_factory):
    return PostingEngine(uow_factory)


@pytest.fixture
def aggregator(uow_factory):
    return ReportAggregator(uow_factory)


@pytest.fixture
async def chart(uow_factory):
    """Standard chart of accounts plus the config row; returns accounts by code."""
    await seed_database(uow_factory)
    async with uow_factory() as uow:
        accounts = await uow.accounts.list()
    return {a.code: a for a in accounts}


@pytest.fixture
async def parties(posting_engine, chart):
    """A customer and a vendor with no opening balance, plus the chart."""
    customer = await posting_engine.register_account(name="Ahmed Travels", type=AccountType.CUSTOMER, cell="0300-1234567")
    vendor = await posting_engine.register_account(name="Makkah Hotels Co", type=AccountType.VENDOR, location="Makkah")
    return {
        "customer": customer,
        "vendor": vendor,
        "bank": chart["1002"],
        "cash": chart["1001"],
        "reserve": chart["3001"],
        "rev_hotel": chart["4001"],
        "rev_transport": chart["4002"],
        "petty": chart["5001"],
        "office": chart["5002"],
    }


@pytest.fixture
async def client(uow_factory):
    """Async client for testing, wired to the test database."""
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


@pytest.fixture
def balance(uow_factory):
    """Read an account's stored balance through a fresh unit of work."""
    async def read(account_id) -> Decimal:
        async with uow_factory() as uow:
            account = await uow.accounts.get(account_id)
        return Decimal(account.balance)
    return read
