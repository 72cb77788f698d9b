from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from sqlalchemy import select
from sqlalchemy.orm import Session

from planner.domain.calendar import weekday_index
from planner.domain.errors import NotFoundError
from planner.domain.validation import validate_new_task, validate_routine_update, validate_task_update

from .models import RoutineModel, TaskModel, new_id, utcnow

Collection = Literal["tasks", "routines"]
Action = Literal["create", "update", "delete", "delete_open_for_routine", "reschedule_open_for_routine"]


@dataclass
class BatchOperation:
    collection: Collection
    action: Action
    record_id: str
    fields: dict = field(default_factory=dict)
    # "routine_day_free": create only while the routine exists and has no task due that day.
    guard: str | None = None


class WriteBatch:
    def __init__(self) -> None:
        self.operations: list[BatchOperation] = []
        self.removed: list[str] = []

    def __len__(self) -> int:
        return len(self.operations)

    def __bool__(self) -> bool:
        return bool(self.operations)

    def create_task(self, fields: dict, if_absent: bool = False) -> str:
        record_id = new_id()
        guard = "routine_day_free" if if_absent else None
        self.operations.append(BatchOperation("tasks", "create", record_id, validate_new_task(fields), guard))
        return record_id

    def update_task(self, task_id: str, fields: dict) -> None:
        self.operations.append(BatchOperation("tasks", "update", task_id, validate_task_update(fields)))

    def delete_task(self, task_id: str) -> None:
        self.operations.append(BatchOperation("tasks", "delete", task_id))

    def delete_open_routine_tasks(self, routine_id: str) -> None:
        self.operations.append(BatchOperation("tasks", "delete_open_for_routine", routine_id))

    def reschedule_open_routine_tasks(self, routine_id: str, from_day: date, previous_title: str) -> None:
        self.operations.append(BatchOperation(
            "tasks",
            "reschedule_open_for_routine",
            routine_id,
            {"from_day": from_day, "previous_title": previous_title},
        ))

    def update_routine(self, routine_id: str, fields: dict) -> None:
        self.operations.append(BatchOperation("routines", "update", routine_id, validate_routine_update(fields)))

    def delete_routine(self, routine_id: str) -> None:
        self.operations.append(BatchOperation("routines", "delete", routine_id))

    @property
    def collections(self) -> set[str]:
        return {operation.collection for operation in self.operations}


_MODELS = {"tasks": TaskModel, "routines": RoutineModel}


def _routine_instance_missing(session: Session, user_id: str, fields: dict) -> bool:
    routine = session.get(RoutineModel, fields["routine_id"])
    if routine is None or routine.user_id != user_id:
        return False
    stmt = select(TaskModel.id).where(
        TaskModel.user_id == user_id,
        TaskModel.routine_id == fields["routine_id"],
        TaskModel.due_date == fields["due_date"],
    )
    return session.scalar(stmt.limit(1)) is None


def _delete_open_routine_tasks(session: Session, user_id: str, routine_id: str) -> list[str]:
    stmt = select(TaskModel).where(
        TaskModel.user_id == user_id,
        TaskModel.routine_id == routine_id,
        TaskModel.is_completed.is_(False),
    )
    removed = []
    for record in session.scalars(stmt).all():
        removed.append(record.id)
        session.delete(record)
    return removed


def _reschedule_open_routine_tasks(session: Session, user_id: str, routine_id: str, fields: dict) -> list[str]:
    routine = session.get(RoutineModel, routine_id)
    if routine is None or routine.user_id != user_id:
        return []
    stmt = select(TaskModel).where(
        TaskModel.user_id == user_id,
        TaskModel.routine_id == routine_id,
        TaskModel.is_completed.is_(False),
        TaskModel.due_date >= fields["from_day"],
    )
    removed = []
    for record in session.scalars(stmt).all():
        if record.due_date < routine.start_date or weekday_index(record.due_date) not in routine.frequency:
            removed.append(record.id)
            session.delete(record)
        elif record.title == fields["previous_title"]:
            record.title = routine.title
    return removed


def apply_batch(session: Session, user_id: str, batch: WriteBatch) -> list[str]:
    created: list[str] = []
    batch.removed = []
    for operation in batch.operations:
        model = _MODELS[operation.collection]
        if operation.action == "create":
            if operation.guard == "routine_day_free" and operation.fields.get("routine_id"):
                if not _routine_instance_missing(session, user_id, operation.fields):
                    continue
            session.add(model(id=operation.record_id, user_id=user_id, created_at=utcnow(), **operation.fields))
            session.flush()
            created.append(operation.record_id)
            continue
        if operation.action == "delete_open_for_routine":
            batch.removed.extend(_delete_open_routine_tasks(session, user_id, operation.record_id))
            session.flush()
            continue
        if operation.action == "reschedule_open_for_routine":
            batch.removed.extend(_reschedule_open_routine_tasks(session, user_id, operation.record_id, operation.fields))
            session.flush()
            continue

        record = session.get(model, operation.record_id)
        if record is None or record.user_id != user_id:
            if operation.action == "update":
                raise NotFoundError(f"{operation.collection} {operation.record_id} not found")
            continue
        if operation.action == "update":
            for key, value in operation.fields.items():
                setattr(record, key, value)
        else:
            session.delete(record)
            if operation.collection == "tasks":
                batch.removed.append(record.id)
    return created
