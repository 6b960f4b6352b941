import asyncio
import json
import logging
import uuid
from datetime import datetime

import sentry_sdk
from pydantic import ValidationError

from deepwork.schemas.stats import DailyRecord
from deepwork.services.session_engine import CompletionEvent
from deepwork.services.storage import PersistenceUnavailable, StatsBackend

logger = logging.getLogger(__name__)


class MalformedPersistedRecord(ValueError):
    """A persisted entry that is not a ``{date, duration}`` pair."""


def date_key(instant: datetime) -> str:
    """Local calendar day of ``instant`` as ``YYYY-MM-DD``.

    Aware datetimes are converted to the host's local zone first; naive ones
    are assumed to already be local.
    """
    if instant.tzinfo is not None:
        instant = instant.astimezone()
    return instant.date().isoformat()


def parse_record(entry) -> DailyRecord:
    try:
        return DailyRecord.model_validate(entry)
    except ValidationError as exc:
        raise MalformedPersistedRecord(f"Discarding persisted entry {entry!r}") from exc


class StatsStore:
    """In-memory date -> seconds mapping, written through to a backend.

    The in-memory snapshot is the source of truth. Every mutation persists the
    whole snapshot; a failed write sets ``save_pending`` and is retried on the
    next mutation or explicit ``persist()``.
    """

    def __init__(
        self,
        backend: StatsBackend,
        attempts: int = 3,
        retry_delay: float = 0.5,
    ):
        self.backend = backend
        self.attempts = max(1, attempts)
        self.retry_delay = retry_delay
        self.save_pending = False
        self._durations: dict[str, int] = {}
        self._applied_events: set[uuid.UUID] = set()
        self._lock = asyncio.Lock()

    async def load(self) -> dict[str, int]:
        self._durations = {}
        try:
            payload = await self.backend.read()
        except PersistenceUnavailable as exc:
            logger.warning("Stats unavailable, starting empty: %s", exc)
            return self.as_mapping()

        if payload is None:
            return self.as_mapping()

        try:
            entries = json.loads(payload)
        except (TypeError, ValueError):
            logger.warning("Persisted stats are not valid JSON, starting empty")
            return self.as_mapping()
        if not isinstance(entries, list):
            logger.warning("Persisted stats are not a list, starting empty")
            return self.as_mapping()

        for entry in entries:
            try:
                record = parse_record(entry)
            except MalformedPersistedRecord as exc:
                logger.warning("%s", exc)
                continue
            self._durations[record.date] = self._durations.get(record.date, 0) + record.duration

        logger.info("Loaded stats for %d days", len(self._durations))
        return self.as_mapping()

    async def record_duration(self, key: str, seconds: int) -> bool:
        """Add ``seconds`` to the record for ``key`` and persist.

        Returns whether the snapshot reached the backend.
        """
        # ValidationError is a ValueError: bad keys and negative or non-int seconds
        DailyRecord(date=key, duration=seconds)

        async with self._lock:
            self._durations[key] = self._durations.get(key, 0) + seconds
            return await self._write()

    async def record_completion(self, event: CompletionEvent) -> bool:
        """Credit a completed session to the local day it ended on.

        Redelivered events are ignored and return False.
        """
        if event.event_id in self._applied_events:
            logger.warning("Ignoring duplicate completion event %s", event.event_id)
            return False
        self._applied_events.add(event.event_id)
        return await self.record_duration(date_key(event.ended_at), event.duration)

    async def persist(self) -> bool:
        async with self._lock:
            return await self._write()

    async def _write(self) -> bool:
        # caller holds self._lock
        for attempt in range(1, self.attempts + 1):
            payload = json.dumps([r.model_dump() for r in self.records()])
            try:
                await self.backend.write(payload)
            except PersistenceUnavailable as exc:
                logger.warning(
                    "Stats write attempt %d/%d failed: %s", attempt, self.attempts, exc
                )
                if attempt < self.attempts:
                    await asyncio.sleep(self.retry_delay)
                continue
            self.save_pending = False
            return True

        self.save_pending = True
        sentry_sdk.capture_message("Deep work stats could not be saved", level="warning")
        return False

    async def clear_all(self) -> None:
        async with self._lock:
            self._durations = {}
            try:
                await self.backend.delete()
            except PersistenceUnavailable as exc:
                # next persist() overwrites whatever is still stored
                logger.warning("Could not delete persisted stats: %s", exc)
                self.save_pending = True
                return
            self.save_pending = False
        logger.info("All deep work stats cleared")

    def get(self, key: str) -> int | None:
        return self._durations.get(key)

    def as_mapping(self) -> dict[str, int]:
        return dict(self._durations)

    def records(self) -> list[DailyRecord]:
        return [
            DailyRecord(date=key, duration=seconds)
            for key, seconds in sorted(self._durations.items())
        ]

    def total_seconds(self) -> int:
        return sum(self._durations.values())
