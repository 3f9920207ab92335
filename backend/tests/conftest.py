"""
Pytest fixtures for test database, client, and seeded courts/players.

Each test gets its own SQLite file database, so tables start empty and
several sessions can run concurrently against the same data (needed for the
double-request tests). Redis is disabled: the cache and event fan-out
degrade to no-ops unless a test asks for the `fake_redis` fixture, which
puts an in-memory fakeredis client behind both.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./court_booking_test.db"
os.environ["REDIS_ENABLED"] = "false"

from typing import AsyncGenerator

import fakeredis
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, AsyncEngine, create_async_engine, async_sessionmaker

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.locks import court_locks
from app.models.court import Court
from app.models.player import Player
from app.services import booking_events, cache_service


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database file with all tables created."""
    test_engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'court_booking.db'}", echo=False)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests each get their own session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_court_locks():
    """asyncio locks belong to one event loop; every test runs on a new one."""
    court_locks.clear()
    yield
    court_locks.clear()


async def _add(session_factory: async_sessionmaker, *records):
    async with session_factory() as session:
        session.add_all(records)
        await session.commit()
        for record in records:
            await session.refresh(record)
    return records


@pytest_asyncio.fixture
async def court(session_factory: async_sessionmaker) -> Court:
    (record,) = await _add(session_factory, Court(name="Centre Court", surface="clay", lights=True))
    return record


@pytest_asyncio.fixture
async def second_court(session_factory: async_sessionmaker) -> Court:
    (record,) = await _add(session_factory, Court(name="Court 2", surface="hard", indoor=True))
    return record


@pytest_asyncio.fixture
async def inactive_court(session_factory: async_sessionmaker) -> Court:
    (record,) = await _add(session_factory, Court(name="Closed Court", is_active=False))
    return record


@pytest_asyncio.fixture
async def players(session_factory: async_sessionmaker) -> list[Player]:
    """Four players: Ana, Ben, Cleo, Dev."""
    records = await _add(
        session_factory,
        Player(name="Ana", email="ana@example.com"),
        Player(name="Ben", phone="+44 20 7946 0000"),
        Player(name="Cleo", email="cleo@example.com"),
        Player(name="Dev"),
    )
    return list(records)


@pytest_asyncio.fixture
async def fake_redis(monkeypatch) -> AsyncGenerator[fakeredis.FakeAsyncRedis, None]:
    """Schedule cache and event channel backed by fakeredis."""
    client = fakeredis.FakeAsyncRedis(decode_responses=True)

    async def get_fake_redis():
        return client

    monkeypatch.setattr(cache_service, "get_redis", get_fake_redis)
    monkeypatch.setattr(booking_events, "get_redis", get_fake_redis)
    yield client
    await client.flushall()
    await client.aclose()
