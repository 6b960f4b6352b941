from datetime import date

from pydantic import BaseModel, Field, model_validator


class SessionState(BaseModel):
    remaining_seconds: int
    initial_seconds: int
    status: str  # idle, running
    display: str  # HH:MM:SS


class DurationUpdate(BaseModel):
    total_seconds: int | None = None
    display: str | None = Field(default=None, max_length=32)

    @model_validator(mode="after")
    def _exactly_one(self) -> "DurationUpdate":
        if (self.total_seconds is None) == (self.display is None):
            raise ValueError("Provide exactly one of total_seconds or display")
        return self


class FinishResponse(BaseModel):
    session: SessionState
    recorded_seconds: int
    date: date
    saved: bool
