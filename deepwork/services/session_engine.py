"""Countdown state machine for a single deep work session.

The engine is synchronous and knows nothing about scheduling or storage:
ticks are fed in from outside and completions are returned to the caller.
"""

import enum
import logging
import re
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

logger = logging.getLogger(__name__)

DEFAULT_SESSION_SECONDS = 3600

_HMS = re.compile(r"(\d+):(\d{2}):(\d{2})", re.ASCII)


class InvalidDuration(ValueError):
    """A session length that is not a positive whole number of seconds."""


class SessionLocked(ValueError):
    """The duration cannot be edited while the countdown is running."""


class SessionStatus(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class CompletionEvent:
    duration: int
    ended_at: datetime
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)


def format_duration(seconds: int) -> str:
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours:02d}:{minutes:02d}:{seconds % 60:02d}"


def parse_duration(text: str) -> int:
    """Parse an ``HH:MM:SS`` string into a number of seconds."""
    match = _HMS.fullmatch(text.strip())
    if match is None:
        raise InvalidDuration(f"Expected HH:MM:SS, got {text!r}")
    hours, minutes, seconds = (int(p) for p in match.groups())
    if minutes >= 60 or seconds >= 60:
        raise InvalidDuration(f"Minutes and seconds must be below 60, got {text!r}")
    return hours * 3600 + minutes * 60 + seconds


def _validate_seconds(total_seconds) -> int:
    # bool is an int subclass but never a meaningful duration
    if isinstance(total_seconds, bool) or not isinstance(total_seconds, int):
        raise InvalidDuration(f"Duration must be an integer, got {total_seconds!r}")
    if total_seconds <= 0:
        raise InvalidDuration(f"Duration must be positive, got {total_seconds}")
    return total_seconds


class SessionEngine:
    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.clock = clock
        self.status = SessionStatus.IDLE
        self.initial_seconds = DEFAULT_SESSION_SECONDS
        self.remaining_seconds = DEFAULT_SESSION_SECONDS

    @property
    def is_running(self) -> bool:
        return self.status is SessionStatus.RUNNING

    @property
    def display(self) -> str:
        return format_duration(self.remaining_seconds)

    def configure(self, total_seconds: int) -> None:
        total_seconds = _validate_seconds(total_seconds)
        if self.is_running:
            raise SessionLocked("Pause or reset the session before changing its length")
        self.initial_seconds = total_seconds
        self.remaining_seconds = total_seconds

    def start(self) -> None:
        if self.is_running:
            return
        if self.remaining_seconds == 0:
            self._rearm()
        self.status = SessionStatus.RUNNING

    def pause(self) -> None:
        if self.is_running:
            self.status = SessionStatus.IDLE

    def tick(self) -> CompletionEvent | None:
        if not self.is_running:
            return None
        self.remaining_seconds -= 1
        if self.remaining_seconds > 0:
            return None
        self.status = SessionStatus.FINISHED
        return self._complete()

    def reset(self) -> None:
        self._rearm()

    def finish(self) -> CompletionEvent:
        """End the session early, crediting the time elapsed so far."""
        return self._complete()

    def _complete(self) -> CompletionEvent:
        event = CompletionEvent(
            duration=self.initial_seconds - self.remaining_seconds,
            ended_at=self.clock(),
        )
        logger.info("Session finished after %d seconds", event.duration)
        self._rearm()
        return event

    def _rearm(self) -> None:
        self.status = SessionStatus.IDLE
        self.initial_seconds = DEFAULT_SESSION_SECONDS
        self.remaining_seconds = DEFAULT_SESSION_SECONDS
