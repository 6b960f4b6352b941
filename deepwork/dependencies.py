from fastapi import Request

from deepwork.services.stats_store import StatsStore
from deepwork.services.timer_service import TimerService


async def get_timer(request: Request) -> TimerService:
    return request.app.state.timer


async def get_store(request: Request) -> StatsStore:
    return request.app.state.store
