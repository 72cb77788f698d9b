from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Callable, Sequence

from planner.domain.calendar import today
from planner.domain.entities import PlanStep, RoutineEntity, TaskEntity
from planner.domain.errors import PlannerError, StoreUnavailableError
from planner.infra.store import PlannerStore

from .ai_planner import AIPlanner
from .materializer import RoutineMaterializer
from .reconciler import RoutineReconciler

logger = logging.getLogger(__name__)

AI_TITLE_PREFIX = "[AI] "


def _log_notice(message: str) -> None:
    logger.warning(message)


class PlannerSession:
    def __init__(
        self,
        store: PlannerStore,
        materializer: RoutineMaterializer | None = None,
        reconciler: RoutineReconciler | None = None,
        ai_planner: AIPlanner | None = None,
        notify: Callable[[str], None] = _log_notice,
        clock: Callable[[], date] = today,
    ) -> None:
        self.store = store
        self.materializer = materializer or RoutineMaterializer(store, clock=clock)
        self.reconciler = reconciler or RoutineReconciler(store, clock=clock)
        self.ai_planner = ai_planner or AIPlanner()
        self.notify = notify
        self._clock = clock
        self.tasks: tuple[TaskEntity, ...] = ()
        self.routines: tuple[RoutineEntity, ...] = ()
        self.is_loading = True
        self._unsubscribers: list[Callable[[], None]] = []

    def start(self) -> None:
        if not self.store.is_ready:
            logger.warning("store is not initialized, live updates disabled")
            return
        self._unsubscribers.append(self.store.routines.subscribe(self._on_routines))
        self._unsubscribers.append(self.store.tasks.subscribe(self._on_tasks))

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _on_tasks(self, snapshot: Sequence[TaskEntity]) -> None:
        snapshot = tuple(snapshot)
        if not self.is_loading and snapshot == self.tasks:
            return
        self.tasks = snapshot
        self.is_loading = False
        self._maybe_materialize()

    def _on_routines(self, snapshot: Sequence[RoutineEntity]) -> None:
        snapshot = tuple(snapshot)
        if snapshot == self.routines:
            return
        self.routines = snapshot
        self._maybe_materialize()

    def _maybe_materialize(self) -> None:
        if self.is_loading or not self.routines:
            return
        try:
            self.materializer.run(self.routines, self.tasks)
        except PlannerError as exc:
            # The next snapshot change re-runs the full diff.
            self.notify(f"Could not create routine tasks: {exc}")

    def sync(self) -> list[str]:
        return self.materializer.run(self.store.routines.list_all(), self.store.tasks.list_all())

    def _guard(self, action: str, operation: Callable[[], object]):
        try:
            return operation()
        except StoreUnavailableError:
            logger.warning("%s skipped: store is not initialized", action)
            return None
        except PlannerError as exc:
            logger.exception("%s failed", action)
            self.notify(f"{action} failed: {exc}")
            return None

    def add_task(self, title: str, due_date: date | str | None = None) -> str | None:
        return self._guard(
            "Adding task",
            lambda: self.store.tasks.create({"title": title, "due_date": due_date or self._clock()}),
        )

    def update_task(self, task_id: str, fields: dict) -> None:
        self._guard("Updating task", lambda: self.store.tasks.update(task_id, fields))

    def toggle_complete(self, task: TaskEntity) -> None:
        self.update_task(task.id, {"is_completed": not task.is_completed})

    def delete_task(self, task_id: str) -> None:
        self._guard("Deleting task", lambda: self.store.tasks.delete(task_id))

    def add_routine(self, title: str, frequency, start_date: date | str) -> str | None:
        return self._guard(
            "Creating routine",
            lambda: self.store.routines.create(
                {"title": title, "frequency": frequency, "start_date": start_date}
            ),
        )

    def update_routine(self, routine_id: str, fields: dict) -> list[str] | None:
        return self._guard("Updating routine", lambda: self.reconciler.update_routine(routine_id, fields))

    def delete_routine(self, routine_id: str) -> list[str] | None:
        return self._guard("Deleting routine", lambda: self.reconciler.delete_routine(routine_id))

    def routine_title(self, routine_id: str | None) -> str | None:
        for routine in self.routines:
            if routine.id == routine_id:
                return routine.title
        return None

    def generate_plan(self, goal: str, provider_id: str, credential: str | None) -> list[PlanStep] | None:
        return self._guard(
            "Generating plan",
            lambda: self.ai_planner.generate_plan(goal, provider_id, credential),
        )

    def apply_plan(self, steps: Sequence[PlanStep]) -> list[str] | None:
        first_day = self._clock()

        def commit() -> list[str]:
            batch = self.store.batch()
            for step in steps:
                batch.create_task({
                    "title": f"{AI_TITLE_PREFIX}{step.title}",
                    "due_date": first_day + timedelta(days=step.days_offset),
                })
            return self.store.commit(batch)

        return self._guard("Saving plan", commit)
