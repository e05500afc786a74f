"""
Pytest fixtures for the test database, stores, seeded venues and the HTTP client.

Each test gets a fresh database: a SQLite file under tmp_path by default, or
the PostgreSQL database named by TEST_DATABASE_URL (tables are dropped and
recreated around every test).
"""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("PAYMENT_PROVIDER", "local")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")

from datetime import datetime, time, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from queueskip.api.deps import get_gateway
from queueskip.db.base import Base
from queueskip.db.session import build_engine, get_db
from queueskip.infrastructure.payment_gateways import LocalPaymentGateway
from queueskip.infrastructure.sql_store import SqlAlchemyReservationStore
from queueskip.main import app
from queueskip.services.ledger_service import CustomerInfo
from queueskip.services.schedule_service import WeeklyScheduleEntry, apply_weekly_schedule
from queueskip.services.venue_service import create_venue

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

MELBOURNE = "Australia/Melbourne"
VENUE_ID = "melb-bar"
MONDAY, WEDNESDAY = 1, 3

# Monday 2026-10-19 20:05 in Melbourne (AEDT, UTC+11)
NOW = datetime(2026, 10, 19, 9, 5, tzinfo=timezone.utc)

CUSTOMER = CustomerInfo(email="sam@example.com", name="Sam Taylor", amount_total=2000)


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create tables, yield the engine, then drop everything for isolation."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'queueskip_test.db'}"
    test_engine = build_engine(url)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def store(db_session: AsyncSession) -> SqlAlchemyReservationStore:
    return SqlAlchemyReservationStore(db_session)


@pytest_asyncio.fixture
async def venue_id(session_factory) -> str:
    """
    Melbourne venue selling 3 slots per period on Monday 18:00-23:00 and
    5 per period on Wednesday 12:00-14:00. Seeded on its own session so the
    tests' sessions start with no open transaction.
    """
    async with session_factory() as session:
        seed = SqlAlchemyReservationStore(session)
        await create_venue(seed, VENUE_ID, "Melbourne Bar", Decimal("20.00"), time_zone=MELBOURNE)
        await apply_weekly_schedule(
            seed,
            VENUE_ID,
            [
                WeeklyScheduleEntry(MONDAY, time(18, 0), time(23, 0), 3),
                WeeklyScheduleEntry(WEDNESDAY, time(12, 0), time(14, 0), 5),
            ],
        )
    return VENUE_ID


@pytest.fixture
def gateway() -> LocalPaymentGateway:
    return LocalPaymentGateway(base_url="http://test")


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, gateway) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh DB session per request and a local gateway."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Key": os.environ["ADMIN_API_KEY"]}
