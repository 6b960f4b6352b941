from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from deepwork.dependencies import get_store
from deepwork.schemas.stats import CalendarResponse, StatsResponse
from deepwork.services import calendar_service
from deepwork.services.stats_store import StatsStore

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(store: StatsStore = Depends(get_store)):
    return StatsResponse(
        records=store.records(),
        total_seconds=store.total_seconds(),
        save_pending=store.save_pending,
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    today: date | None = Query(default=None),
    store: StatsStore = Depends(get_store),
):
    today = today or date.today()
    if today < calendar_service.EARLIEST_TODAY:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"today must be on or after {calendar_service.EARLIEST_TODAY.isoformat()}",
        )
    return calendar_service.build_calendar(store.as_mapping(), today)


@router.delete("", status_code=204)
async def clear_stats(
    confirm: bool = Query(default=False),
    store: StatsStore = Depends(get_store),
):
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Deleting all stats cannot be undone; repeat with confirm=true",
        )
    await store.clear_all()
    return Response(status_code=204)
