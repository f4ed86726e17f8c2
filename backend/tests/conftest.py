"""Pytest configuration and fixtures for FreightLink tests.

A file-backed SQLite database (aiosqlite) stands in for PostgreSQL; every
test gets a fresh one.  Redis caching is disabled unless a test asks for
`fake_redis`, and Twilio credentials are blank so SMS sends are skipped.
"""

import fnmatch
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DATABASE_URL_SYNC"] = "sqlite://"
os.environ["CACHE_ENABLED"] = "false"
os.environ["WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["TWILIO_ACCOUNT_SID"] = ""
os.environ["TWILIO_AUTH_TOKEN"] = ""
os.environ["TWILIO_FROM_NUMBER"] = ""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
import redis.asyncio as redis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import app.models  # noqa: F401  (registers every table on Base.metadata)
from app.auth.jwt import create_access_token
from app.config import settings
from app.database import Base, get_db
from app.events.bus import StatusEventBus, status_bus
from app.events.status_events import StatusChangedEvent
from app.main import app
from app.models.directory import Customer, Partner
from app.utils import cache as cache_module


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'freightlink.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for engine-level tests; the test decides when to commit."""
    async with session_factory() as session:
        yield session


# ── Event bus ────────────────────────────────────────────────────

class RecordingSubscriber:
    """Collects every event it receives."""

    name = "recorder"

    def __init__(self):
        self.events: list[StatusChangedEvent] = []

    async def __call__(self, evt: StatusChangedEvent) -> None:
        self.events.append(evt)


@pytest.fixture
def recorder() -> RecordingSubscriber:
    return RecordingSubscriber()


@pytest_asyncio.fixture
async def bus(recorder) -> AsyncGenerator[StatusEventBus, None]:
    """Private bus with a recording subscriber, started for the test."""
    bus = StatusEventBus()
    bus.subscribe(recorder)
    await bus.start()
    yield bus
    await bus.stop()


# ── HTTP client ──────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(session_factory, recorder) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the ASGI app with the test database and a recording bus."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    status_bus.clear()
    status_bus.subscribe(recorder)
    await status_bus.start()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    await status_bus.stop()
    status_bus.clear()
    app.dependency_overrides.clear()


def bearer(subject: str, role: str, organization: str = "skyrak") -> dict:
    return {"Authorization": f"Bearer {create_access_token(subject, role, organization)}"}


@pytest.fixture
def admin_headers() -> dict:
    return bearer("admin-1", "admin", "skyrak")


@pytest.fixture
def super_admin_headers() -> dict:
    return bearer("admin-root", "admin", "skyline")


# ── Directory data ───────────────────────────────────────────────

@pytest_asyncio.fixture
async def customer(db_session: AsyncSession) -> Customer:
    customer = Customer(
        id="cust-1", organization="skyrak", name="Ama Mensah", phone="+233201234567",
    )
    db_session.add(customer)
    await db_session.commit()
    return customer


@pytest_asyncio.fixture
async def partner(db_session: AsyncSession) -> Partner:
    partner = Partner(
        id="p-1", organization="skyrak", name="Kumasi Logistics", phone_number="+233244000111",
    )
    db_session.add(partner)
    await db_session.commit()
    return partner


# ── Redis ────────────────────────────────────────────────────────

class FakeRedis:
    """In-memory stand-in for the handful of Redis commands the cache uses."""

    def __init__(self, fail: bool = False):
        self.store: dict[str, str] = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("redis unavailable")

    async def get(self, key):
        self._check()
        return self.store.get(key)

    async def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value

    async def delete(self, *keys):
        self._check()
        for key in keys:
            self.store.pop(key, None)

    async def scan_iter(self, match="*"):
        self._check()
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key


@pytest.fixture
def fake_redis(monkeypatch) -> FakeRedis:
    """Enable caching against an in-memory Redis."""
    fake = FakeRedis()

    async def _get_redis():
        return fake

    monkeypatch.setattr(cache_module, "get_redis", _get_redis)
    monkeypatch.setattr(settings, "cache_enabled", True)
    return fake


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: HTTP API tests")
    config.addinivalue_line("markers", "cache: Redis cache tests")
