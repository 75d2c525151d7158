"""Async test fixtures for shopsync tests using SQLite."""

from __future__ import annotations

import uuid

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shopsync.config import SyncSettings, get_settings
from shopsync.database import get_db
from shopsync.models.base import Base
from shopsync.models.shop import Shop
from shopsync.services.realtime import EventBroker, get_broker

from shopsync.tests.helpers import SHOP_DOMAIN, WEBHOOK_SECRET


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings() -> SyncSettings:
    return SyncSettings(
        _env_file=None,
        database_url="sqlite+aiosqlite:///:memory:",
        shopify_api_secret=WEBHOOK_SECRET,
        public_url="https://sync.example.com",
        sync_page_size=2,
        sync_page_delay_seconds=0,
        sync_max_pages=10,
        cron_secret="cron-secret",
    )


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def shop(db: AsyncSession) -> Shop:
    s = Shop(
        id=uuid.uuid4(),
        shop_domain=SHOP_DOMAIN,
        access_token="shpat_test",
        scope="read_products,read_inventory,read_locations",
        is_active=True,
    )
    db.add(s)
    await db.commit()
    await db.refresh(s)
    return s


@pytest.fixture
def broker() -> EventBroker:
    return EventBroker(queue_size=10)


@pytest_asyncio.fixture
async def client(session_factory, settings, broker):
    """HTTPX async test client against the shopsync app."""
    from shopsync.app import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_broker] = lambda: broker

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    app.dependency_overrides.clear()
