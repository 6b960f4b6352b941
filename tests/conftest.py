from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from deepwork.main import app
from deepwork.services.session_engine import SessionEngine
from deepwork.services.stats_store import StatsStore
from deepwork.services.storage import PersistenceUnavailable
from deepwork.services.timer_service import TimerService

FIXED_NOW = datetime(2026, 3, 14, 21, 30, 0)


class FakeBackend:
    """In-memory single-key store for testing."""

    def __init__(self, payload: str | None = None):
        self.payload = payload
        self.fail_reads = False
        self.fail_writes = 0  # number of upcoming writes that fail
        self.fail_deletes = False
        self.writes = 0

    async def read(self) -> str | None:
        if self.fail_reads:
            raise PersistenceUnavailable("backend offline")
        return self.payload

    async def write(self, payload: str) -> None:
        if self.fail_writes:
            self.fail_writes -= 1
            raise PersistenceUnavailable("backend offline")
        self.writes += 1
        self.payload = payload

    async def delete(self) -> None:
        if self.fail_deletes:
            raise PersistenceUnavailable("backend offline")
        self.payload = None


class ManualTickSource:
    """Tick source driven by the test instead of the event loop."""

    def __init__(self):
        self.callback = None

    @property
    def active(self) -> bool:
        return self.callback is not None

    def on_tick(self, callback) -> None:
        self.callback = callback

    def cancel(self) -> None:
        self.callback = None

    async def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if self.callback is None:
                return
            await self.callback()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def store(backend: FakeBackend) -> StatsStore:
    return StatsStore(backend, attempts=3, retry_delay=0)


@pytest.fixture
def ticker() -> ManualTickSource:
    return ManualTickSource()


@pytest.fixture
def engine() -> SessionEngine:
    return SessionEngine(clock=lambda: FIXED_NOW)


@pytest.fixture
def timer(engine: SessionEngine, store: StatsStore, ticker: ManualTickSource) -> TimerService:
    return TimerService(engine, store, ticker)


@pytest.fixture
async def client(timer: TimerService, store: StatsStore) -> AsyncGenerator[AsyncClient, None]:
    app.state.timer = timer
    app.state.store = store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
