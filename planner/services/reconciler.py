from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from planner.domain.calendar import today
from planner.domain.errors import NotFoundError, PlannerError

logger = logging.getLogger(__name__)


class RoutineReconciler:
    def __init__(self, store, clock: Callable[[], date] = today) -> None:
        self._store = store
        self._clock = clock

    def _commit(self, batch, action: str, routine_id: str) -> None:
        try:
            self._store.commit(batch)
        except PlannerError:
            logger.exception("%s routine %s failed", action, routine_id)
            raise

    def delete_routine(self, routine_id: str) -> list[str]:
        if self._store.routines.get(routine_id) is None:
            raise NotFoundError(f"routine {routine_id} not found")

        # Completed instances stay as history with a dangling routine_id.
        batch = self._store.batch()
        batch.delete_open_routine_tasks(routine_id)
        batch.delete_routine(routine_id)
        self._commit(batch, "deleting", routine_id)
        logger.info("deleted routine %s and %d open tasks", routine_id, len(batch.removed))
        return list(batch.removed)

    def update_routine(self, routine_id: str, fields: dict) -> list[str]:
        routine = self._store.routines.get(routine_id)
        if routine is None:
            raise NotFoundError(f"routine {routine_id} not found")

        # Open instances from today on are dropped when off the new schedule,
        # and renamed while they still carry the old title.
        batch = self._store.batch()
        batch.update_routine(routine_id, fields)
        batch.reschedule_open_routine_tasks(routine_id, self._clock(), routine.title)
        self._commit(batch, "updating", routine_id)
        logger.info("updated routine %s, dropped %d open tasks", routine_id, len(batch.removed))
        return list(batch.removed)
