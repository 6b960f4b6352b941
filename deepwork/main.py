import logging
from contextlib import asynccontextmanager

import redis.asyncio as redis
import sentry_sdk
from fastapi import FastAPI

from deepwork.config import settings
from deepwork.database import async_session, engine
from deepwork.models import Base
from deepwork.services.session_engine import SessionEngine
from deepwork.services.stats_store import StatsStore
from deepwork.services.storage import DatabaseStatsBackend, RedisStatsBackend
from deepwork.services.ticker import AsyncioTickSource
from deepwork.services.timer_service import TimerService

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize Sentry
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=0.2 if settings.ENVIRONMENT == "production" else 1.0,
        send_default_pii=False,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: pick the stats backend and load the snapshot
    redis_client = None
    if settings.STORAGE_BACKEND == "database":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        backend = DatabaseStatsBackend(async_session, settings.STATS_KEY)
    elif settings.STORAGE_BACKEND == "redis":
        redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
        backend = RedisStatsBackend(redis_client, settings.STATS_KEY)
    else:
        raise RuntimeError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}")

    store = StatsStore(
        backend,
        attempts=settings.PERSIST_ATTEMPTS,
        retry_delay=settings.PERSIST_RETRY_DELAY,
    )
    await store.load()

    app.state.store = store
    app.state.timer = TimerService(
        SessionEngine(),
        store,
        AsyncioTickSource(interval=settings.TICK_INTERVAL),
    )
    logger.info("Deep work tracker started with %s storage", settings.STORAGE_BACKEND)

    yield

    # Shutdown
    await app.state.timer.shutdown()
    if redis_client is not None:
        await redis_client.close()
    await engine.dispose()


app = FastAPI(
    title="Deep Work Tracker API",
    version="0.1.0",
    lifespan=lifespan,
)

from deepwork.middleware.error_handler import register_error_handlers  # noqa: E402

register_error_handlers(app)

# Routers
from deepwork.routers.sessions import router as sessions_router  # noqa: E402
from deepwork.routers.stats import router as stats_router  # noqa: E402

app.include_router(sessions_router)
app.include_router(stats_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
