from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from planner.domain.calendar import start_of_day, today
from planner.domain.entities import TaskEntity
from planner.domain.enums import TaskFilterKey
from planner.domain.filters import TaskFilters


@dataclass(frozen=True)
class DayTasks:
    due: list[TaskEntity]
    completed: list[TaskEntity]


def _is_overdue(task: TaskEntity, current: date) -> bool:
    return not task.is_completed and task.due_date is not None and start_of_day(task.due_date) < current


def filter_tasks(tasks: Iterable[TaskEntity], filters: TaskFilters, current: date | None = None) -> list[TaskEntity]:
    current = current or today()
    result = []
    for task in tasks:
        key = filters.filter_key
        if key == TaskFilterKey.ACTIVE and task.is_completed:
            continue
        if key == TaskFilterKey.COMPLETED and not task.is_completed:
            continue
        if key == TaskFilterKey.OVERDUE and not _is_overdue(task, current):
            continue
        if key == TaskFilterKey.ROUTINE and not task.is_routine:
            continue
        if filters.due_on and (task.due_date is None or start_of_day(task.due_date) != filters.due_on):
            continue
        if filters.search and filters.search.lower() not in task.title.lower():
            continue
        result.append(task)
    return sorted(result, key=lambda t: (t.due_date or date.max, t.title))


def tasks_for_day(tasks: Iterable[TaskEntity], day: date) -> DayTasks:
    due, completed = [], []
    for task in tasks:
        if task.due_date is None or start_of_day(task.due_date) != day:
            continue
        (completed if task.is_completed else due).append(task)
    return DayTasks(due=due, completed=completed)


def overdue_tasks(tasks: Iterable[TaskEntity], current: date | None = None) -> list[TaskEntity]:
    current = current or today()
    return sorted((t for t in tasks if _is_overdue(t, current)), key=lambda t: t.due_date)


def completed_history(tasks: Iterable[TaskEntity]) -> list[TaskEntity]:
    done = [t for t in tasks if t.is_completed]
    return sorted(done, key=lambda t: t.due_date or date.min, reverse=True)


def compute_stats(tasks: Iterable[TaskEntity], current: date | None = None) -> dict[str, int]:
    tasks = list(tasks)
    current = current or today()
    completed = sum(1 for t in tasks if t.is_completed)
    total = len(tasks)
    return {
        "total": total,
        "completed": completed,
        "active": total - completed,
        "overdue": sum(1 for t in tasks if _is_overdue(t, current)),
        "rate": round(completed * 100 / total) if total else 0,
    }

