from datetime import date as date_type

from pydantic import BaseModel, Field, field_validator


class DailyRecord(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")  # local calendar day
    duration: int = Field(ge=0, strict=True)  # seconds

    @field_validator("date")
    @classmethod
    def _real_calendar_day(cls, value: str) -> str:
        date_type.fromisoformat(value)
        return value


class StatsResponse(BaseModel):
    records: list[DailyRecord]
    total_seconds: int
    save_pending: bool


class CalendarCell(BaseModel):
    date: date_type
    hours: float
    level: int  # 0-4
    label: str  # e.g. "1.5 hours on 2026-03-02"


class CalendarResponse(BaseModel):
    start: date_type
    end: date_type
    cells: list[CalendarCell]
    weeks: list[list[CalendarCell]]  # 7 consecutive days per column
    levels: list[int]
