from fastapi import APIRouter, Depends

from deepwork.dependencies import get_timer
from deepwork.schemas.session import DurationUpdate, FinishResponse, SessionState
from deepwork.services.session_engine import SessionEngine, parse_duration
from deepwork.services.stats_store import date_key
from deepwork.services.timer_service import TimerService

router = APIRouter(prefix="/session", tags=["session"])


def _state(engine: SessionEngine) -> SessionState:
    return SessionState(
        remaining_seconds=engine.remaining_seconds,
        initial_seconds=engine.initial_seconds,
        status=engine.status.value,
        display=engine.display,
    )


@router.get("", response_model=SessionState)
async def get_session(timer: TimerService = Depends(get_timer)):
    return _state(timer.engine)


@router.put("/duration", response_model=SessionState)
async def set_duration(
    data: DurationUpdate,
    timer: TimerService = Depends(get_timer),
):
    if data.display is not None:
        total_seconds = parse_duration(data.display)
    else:
        total_seconds = data.total_seconds
    await timer.configure(total_seconds)
    return _state(timer.engine)


@router.post("/start", response_model=SessionState)
async def start_session(timer: TimerService = Depends(get_timer)):
    await timer.start()
    return _state(timer.engine)


@router.post("/pause", response_model=SessionState)
async def pause_session(timer: TimerService = Depends(get_timer)):
    await timer.pause()
    return _state(timer.engine)


@router.post("/reset", response_model=SessionState)
async def reset_session(timer: TimerService = Depends(get_timer)):
    await timer.reset()
    return _state(timer.engine)


@router.post("/finish", response_model=FinishResponse)
async def finish_session(timer: TimerService = Depends(get_timer)):
    event = await timer.finish()
    return FinishResponse(
        session=_state(timer.engine),
        recorded_seconds=event.duration,
        date=date_key(event.ended_at),
        saved=timer.last_saved,
    )
