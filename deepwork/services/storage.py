"""Key-value persistence backends for the stats snapshot.

Each backend stores one serialized payload under a single logical key.
Library-specific failures are re-raised as ``PersistenceUnavailable`` so the
stats store only has to handle one error type.
"""

from typing import Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from deepwork.models.kv_entry import KVEntry


class PersistenceUnavailable(Exception):
    """The backing store could not be read or written."""


class StatsBackend(Protocol):
    async def read(self) -> str | None: ...

    async def write(self, payload: str) -> None: ...

    async def delete(self) -> None: ...


class RedisStatsBackend:
    def __init__(self, client: redis.Redis, key: str):
        self.client = client
        self.key = key

    async def read(self) -> str | None:
        try:
            return await self.client.get(self.key)
        except (RedisError, OSError) as exc:
            raise PersistenceUnavailable(f"Redis read failed: {exc}") from exc

    async def write(self, payload: str) -> None:
        try:
            await self.client.set(self.key, payload)
        except (RedisError, OSError) as exc:
            raise PersistenceUnavailable(f"Redis write failed: {exc}") from exc

    async def delete(self) -> None:
        try:
            await self.client.delete(self.key)
        except (RedisError, OSError) as exc:
            raise PersistenceUnavailable(f"Redis delete failed: {exc}") from exc


class DatabaseStatsBackend:
    """Stores the payload in the ``kv_entries`` table, one row per key."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], key: str):
        self.session_factory = session_factory
        self.key = key

    async def read(self) -> str | None:
        try:
            async with self.session_factory() as db:
                result = await db.execute(
                    select(KVEntry.value).where(KVEntry.key == self.key)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"Database read failed: {exc}") from exc

    async def write(self, payload: str) -> None:
        try:
            async with self.session_factory() as db:
                entry = await db.get(KVEntry, self.key)
                if entry is None:
                    db.add(KVEntry(key=self.key, value=payload))
                else:
                    entry.value = payload
                await db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"Database write failed: {exc}") from exc

    async def delete(self) -> None:
        try:
            async with self.session_factory() as db:
                await db.execute(delete(KVEntry).where(KVEntry.key == self.key))
                await db.commit()
        except SQLAlchemyError as exc:
            raise PersistenceUnavailable(f"Database delete failed: {exc}") from exc
