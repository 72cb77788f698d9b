from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class TaskEntity:
    id: str
    title: str
    due_date: Optional[date]
    is_completed: bool
    created_at: Optional[datetime]
    is_routine: bool = False
    # Weak reference: the routine may have been deleted since generation.
    routine_id: Optional[str] = None


@dataclass(frozen=True)
class RoutineEntity:
    id: str
    title: str
    frequency: frozenset[int]
    start_date: Optional[date]
    created_at: Optional[datetime]

    def occurs_on(self, weekday: int) -> bool:
        return weekday in self.frequency


@dataclass(frozen=True)
class GridDay:
    date: date
    is_current_month: bool


@dataclass(frozen=True)
class PlanStep:
    title: str
    days_offset: int
