import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[None]]


class TickSource(Protocol):
    def on_tick(self, callback: TickCallback) -> None: ...

    def cancel(self) -> None: ...


class AsyncioTickSource:
    """Calls ``callback`` every ``interval`` seconds on the running event loop."""

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self._task: asyncio.Task | None = None

    @property
    def active(self) -> bool:
        return self._task is not None and not self._task.done()

    def on_tick(self, callback: TickCallback) -> None:
        self.cancel()
        self._task = asyncio.create_task(self._worker(callback))

    def cancel(self) -> None:
        task, self._task = self._task, None
        # a callback cancelling its own source just stops the loop
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _worker(self, callback: TickCallback) -> None:
        me = asyncio.current_task()
        try:
            while self._task is me:
                await asyncio.sleep(self.interval)
                if self._task is not me:
                    break
                await callback()
        except asyncio.CancelledError:
            logger.debug("Tick source cancelled")
            raise
