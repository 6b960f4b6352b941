import math
from collections.abc import Mapping, Sequence
from datetime import date, timedelta

from deepwork.schemas.stats import CalendarCell, CalendarResponse

WINDOW_MONTHS = 12
LEVELS = [0, 1, 2, 3, 4]

# first day whose window does not start before year 1
EARLIEST_TODAY = date(1, WINDOW_MONTHS, 1)


def generate_window(today: date) -> list[date]:
    """Every day from the 1st of the month 11 months back through ``today``."""
    if today < EARLIEST_TODAY:
        raise ValueError(f"today must be on or after {EARLIEST_TODAY.isoformat()}")
    month = today.month - (WINDOW_MONTHS - 1)
    year = today.year
    if month <= 0:
        month += 12
        year -= 1

    current = date(year, month, 1)
    dates = []
    while current <= today:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def classify(hours: float) -> int:
    """Heat-map intensity (0-4) for a day's focused hours."""
    if hours < 0 or math.isnan(hours):
        raise ValueError(f"Hours must be a non-negative number, got {hours!r}")
    if hours == 0:
        return 0
    if hours < 2:
        return 1
    if hours < 4:
        return 2
    if hours < 6:
        return 3
    return 4


def project(dates: Sequence[date], snapshot: Mapping[str, int]) -> list[CalendarCell]:
    cells = []
    for day in dates:
        hours = snapshot.get(day.isoformat(), 0) / 3600
        cells.append(
            CalendarCell(
                date=day,
                hours=hours,
                level=classify(hours),
                label=f"{hours:.1f} hours on {day.isoformat()}",
            )
        )
    return cells


def group_weeks(cells: Sequence[CalendarCell]) -> list[list[CalendarCell]]:
    # Columns start at the window start, not at a weekday boundary
    return [list(cells[i:i + 7]) for i in range(0, len(cells), 7)]


def build_calendar(snapshot: Mapping[str, int], today: date) -> CalendarResponse:
    dates = generate_window(today)
    cells = project(dates, snapshot)
    return CalendarResponse(
        start=dates[0],
        end=dates[-1],
        cells=cells,
        weeks=group_weeks(cells),
        levels=LEVELS,
    )
