from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable

from .entities import GridDay

GRID_SIZE = 42

SHORT_DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
# Display order, Monday first.
WEEK_ORDER = (1, 2, 3, 4, 5, 6, 0)


def today() -> date:
    return date.today()


def start_of_day(instant: datetime | date) -> date:
    if isinstance(instant, datetime):
        if instant.tzinfo is not None:
            instant = instant.astimezone()
        return instant.date()
    return instant


def weekday_index(day: date) -> int:
    # 0 = Sunday
    return (day.weekday() + 1) % 7


def start_of_week(day: datetime | date) -> date:
    day = start_of_day(day)
    return day - timedelta(days=day.weekday())


def week_days(day: datetime | date) -> list[date]:
    monday = start_of_week(day)
    return [monday + timedelta(days=offset) for offset in range(7)]


def month_grid(day: datetime | date) -> list[GridDay]:
    day = start_of_day(day)
    grid_start = start_of_week(day.replace(day=1))
    grid = []
    for offset in range(GRID_SIZE):
        current = grid_start + timedelta(days=offset)
        grid.append(GridDay(date=current, is_current_month=current.month == day.month))
    return grid


def add_months(base: date, months: int) -> date:
    year = base.year + (base.month - 1 + months) // 12
    month = (base.month - 1 + months) % 12 + 1
    day = min(base.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - timedelta(days=1)).day


def frequency_label(frequency: Iterable[int]) -> str:
    days = set(frequency)
    if len(days) == 7:
        return "Daily"
    return ", ".join(SHORT_DAY_NAMES[index] for index in WEEK_ORDER if index in days)
