from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Iterable

from planner.domain.calendar import start_of_day, today, weekday_index
from planner.domain.entities import RoutineEntity, TaskEntity
from planner.domain.errors import PlannerError

logger = logging.getLogger(__name__)

HORIZON_DAYS = 30


def existing_routine_days(tasks: Iterable[TaskEntity]) -> set[tuple[str, date]]:
    return {
        (task.routine_id, start_of_day(task.due_date))
        for task in tasks
        if task.routine_id and task.due_date
    }


def plan_routine_tasks(
    routines: Iterable[RoutineEntity],
    tasks: Iterable[TaskEntity],
    first_day: date,
    horizon_days: int = HORIZON_DAYS,
) -> list[dict]:
    taken = existing_routine_days(tasks)
    staged: list[dict] = []
    for routine in routines:
        if not routine.start_date:
            continue
        start = start_of_day(routine.start_date)
        for offset in range(horizon_days):
            day = first_day + timedelta(days=offset)
            if day < start:
                continue
            if not routine.occurs_on(weekday_index(day)):
                continue
            key = (routine.id, day)
            if key in taken:
                continue
            taken.add(key)
            staged.append({
                "title": routine.title,
                "due_date": day,
                "is_completed": False,
                "is_routine": True,
                "routine_id": routine.id,
            })
    return staged


class RoutineMaterializer:
    def __init__(
        self,
        store,
        horizon_days: int = HORIZON_DAYS,
        clock: Callable[[], date] = today,
    ) -> None:
        self._store = store
        self._horizon_days = horizon_days
        self._clock = clock

    def run(self, routines: Iterable[RoutineEntity], tasks: Iterable[TaskEntity]) -> list[str]:
        staged = plan_routine_tasks(routines, tasks, self._clock(), self._horizon_days)
        if not staged:
            return []

        batch = self._store.batch()
        for fields in staged:
            batch.create_task(fields, if_absent=True)
        try:
            created = self._store.commit(batch)
        except PlannerError:
            logger.exception("routine materialization failed for %d staged tasks", len(staged))
            raise
        logger.info("materialized %d routine tasks", len(created))
        return created
