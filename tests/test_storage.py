import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from deepwork.models import Base
from deepwork.services.stats_store import StatsStore
from deepwork.services.storage import (
    DatabaseStatsBackend,
    PersistenceUnavailable,
    RedisStatsBackend,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """In-memory Redis mock for testing."""

    def __init__(self):
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str) -> None:
        self._store[key] = str(value)

    async def delete(self, key: str) -> int:
        return 1 if self._store.pop(key, None) is not None else 0


class DownRedis:
    async def get(self, key: str):
        raise RedisConnectionError("Connection refused")

    async def set(self, key: str, value: str):
        raise RedisConnectionError("Connection refused")

    async def delete(self, key: str):
        raise RedisTimeoutError("Timed out")


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.mark.asyncio
async def test_redis_backend_roundtrip():
    client = FakeRedis()
    backend = RedisStatsBackend(client, "deepWorkStats")

    assert await backend.read() is None
    await backend.write('[{"date": "2026-03-14", "duration": 60}]')
    assert client._store["deepWorkStats"] == '[{"date": "2026-03-14", "duration": 60}]'

    await backend.delete()
    assert await backend.read() is None


@pytest.mark.asyncio
async def test_redis_backend_wraps_errors():
    backend = RedisStatsBackend(DownRedis(), "deepWorkStats")

    with pytest.raises(PersistenceUnavailable):
        await backend.read()
    with pytest.raises(PersistenceUnavailable):
        await backend.write("[]")
    with pytest.raises(PersistenceUnavailable):
        await backend.delete()


@pytest.mark.asyncio
async def test_store_survives_redis_outage():
    store = StatsStore(RedisStatsBackend(DownRedis(), "deepWorkStats"), retry_delay=0)

    assert await store.load() == {}
    assert await store.record_duration("2026-03-14", 60) is False
    assert store.get("2026-03-14") == 60
    assert store.save_pending is True


@pytest.mark.asyncio
async def test_database_backend_roundtrip(session_factory):
    backend = DatabaseStatsBackend(session_factory, "deepWorkStats")

    assert await backend.read() is None
    await backend.write("[1]")
    await backend.write("[2]")
    assert await backend.read() == "[2]"

    await backend.delete()
    assert await backend.read() is None


@pytest.mark.asyncio
async def test_database_backend_keys_are_independent(session_factory):
    first = DatabaseStatsBackend(session_factory, "first")
    second = DatabaseStatsBackend(session_factory, "second")

    await first.write("a")
    await second.write("b")
    await first.delete()

    assert await first.read() is None
    assert await second.read() == "b"


@pytest.mark.asyncio
async def test_store_with_database_backend(session_factory):
    backend = DatabaseStatsBackend(session_factory, "deepWorkStats")
    store = StatsStore(backend, retry_delay=0)
    await store.record_duration("2026-03-14", 1500)
    await store.record_duration("2026-03-14", 300)

    reloaded = StatsStore(backend, retry_delay=0)
    assert await reloaded.load() == {"2026-03-14": 1800}

    await reloaded.clear_all()
    assert await backend.read() is None


@pytest.mark.asyncio
async def test_database_backend_wraps_errors():
    engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
    # no tables created, so every statement fails
    backend = DatabaseStatsBackend(
        async_sessionmaker(engine, class_=AsyncSession), "deepWorkStats"
    )

    with pytest.raises(PersistenceUnavailable):
        await backend.read()
    with pytest.raises(PersistenceUnavailable):
        await backend.write("[]")
    await engine.dispose()
