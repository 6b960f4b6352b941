import asyncio
import logging

from deepwork.services.session_engine import CompletionEvent, SessionEngine
from deepwork.services.stats_store import StatsStore, date_key
from deepwork.services.ticker import TickSource

logger = logging.getLogger(__name__)


class TimerService:
    """Drives a SessionEngine from a tick source and records completions.

    Every transition, together with the persistence it triggers, runs under
    one lock so ticks and user actions never interleave.
    """

    def __init__(self, engine: SessionEngine, store: StatsStore, ticker: TickSource):
        self.engine = engine
        self.store = store
        self.ticker = ticker
        self._lock = asyncio.Lock()
        self.last_saved = True

    async def configure(self, total_seconds: int) -> None:
        async with self._lock:
            self.engine.configure(total_seconds)

    async def start(self) -> None:
        async with self._lock:
            if self.engine.is_running:
                return
            self.engine.start()
            self.ticker.on_tick(self.tick)

    async def pause(self) -> None:
        async with self._lock:
            self.engine.pause()
            self.ticker.cancel()

    async def reset(self) -> None:
        async with self._lock:
            self.engine.reset()
            self.ticker.cancel()

    async def finish(self) -> CompletionEvent:
        async with self._lock:
            self.ticker.cancel()
            event = self.engine.finish()
            await self._record(event)
            return event

    async def tick(self) -> None:
        async with self._lock:
            event = self.engine.tick()
            if event is None:
                return
            self.ticker.cancel()
            await self._record(event)

    async def shutdown(self) -> None:
        """Stop ticking and make a last attempt at any unsaved stats."""
        async with self._lock:
            self.ticker.cancel()
            if self.store.save_pending:
                await self.store.persist()

    async def _record(self, event: CompletionEvent) -> None:
        await self.store.record_completion(event)
        self.last_saved = not self.store.save_pending
        if not self.last_saved:
            logger.warning(
                "Session of %d seconds on %s is held in memory until the next save",
                event.duration,
                date_key(event.ended_at),
            )
