from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from planner.domain.entities import RoutineEntity, TaskEntity
from planner.domain.errors import BatchCommitError, NotFoundError, StoreUnavailableError
from planner.domain.validation import (
    validate_new_routine,
    validate_new_task,
    validate_routine_update,
    validate_task_update,
)

from .feed import ChangeFeed
from .models import RoutineModel, TaskModel

logger = logging.getLogger(__name__)


def task_to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        title=model.title,
        due_date=model.due_date,
        is_completed=bool(model.is_completed),
        created_at=model.created_at,
        is_routine=bool(model.is_routine),
        routine_id=model.routine_id,
    )


def routine_to_entity(model: RoutineModel) -> RoutineEntity:
    return RoutineEntity(
        id=model.id,
        title=model.title,
        frequency=frozenset(int(day) for day in model.frequency or ()),
        start_date=model.start_date,
        created_at=model.created_at,
    )


class _UserScopedRepository:
    model: type
    feed_name: str

    def __init__(self, session_factory: sessionmaker | None, user_id: str | None) -> None:
        self._session_factory = session_factory
        self.user_id = user_id
        self.feed: ChangeFeed = ChangeFeed(self.feed_name)

    @property
    def is_ready(self) -> bool:
        return self._session_factory is not None and bool(self.user_id)

    @contextmanager
    def session(self) -> Iterator[Session]:
        if not self.is_ready:
            raise StoreUnavailableError(f"{self.feed_name} store is not initialized")
        with self._session_factory() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        with self.session() as session:
            try:
                yield session
                session.commit()
            except SQLAlchemyError as exc:
                session.rollback()
                logger.exception("%s write failed", self.feed_name)
                raise BatchCommitError(f"{self.feed_name} write failed: {exc}") from exc

    def _get_owned(self, session: Session, record_id: str):
        record = session.get(self.model, record_id)
        if record is None or record.user_id != self.user_id:
            return None
        return record

    def _to_entity(self, model):
        raise NotImplementedError

    def list_all(self) -> list:
        with self.session() as session:
            stmt = select(self.model).where(self.model.user_id == self.user_id)
            return [self._to_entity(row) for row in session.scalars(stmt)]

    def subscribe(self, listener: Callable[[Sequence], None]) -> Callable[[], None]:
        return self.feed.subscribe(listener, self.list_all())

    def publish(self) -> None:
        self.feed.publish(self.list_all())

    def _create(self, fields: dict) -> str:
        with self.transaction() as session:
            record = self.model(user_id=self.user_id, **fields)
            session.add(record)
            session.flush()
            record_id = record.id
        self.publish()
        return record_id

    def _update(self, record_id: str, fields: dict) -> None:
        with self.transaction() as session:
            record = self._get_owned(session, record_id)
            if record is None:
                raise NotFoundError(f"{self.feed_name} {record_id} not found")
            for key, value in fields.items():
                setattr(record, key, value)
        self.publish()

    def delete(self, record_id: str) -> None:
        with self.transaction() as session:
            record = self._get_owned(session, record_id)
            if record is None:
                logger.warning("%s %s already absent", self.feed_name, record_id)
                return
            session.delete(record)
        self.publish()


class TaskRepository(_UserScopedRepository):
    model = TaskModel
    feed_name = "tasks"

    def _to_entity(self, model: TaskModel) -> TaskEntity:
        return task_to_entity(model)

    def create(self, fields: dict) -> str:
        return self._create(validate_new_task(fields))

    def update(self, task_id: str, fields: dict) -> None:
        self._update(task_id, validate_task_update(fields))

    def get(self, task_id: str) -> TaskEntity | None:
        with self.session() as session:
            record = self._get_owned(session, task_id)
            return task_to_entity(record) if record else None


class RoutineRepository(_UserScopedRepository):
    model = RoutineModel
    feed_name = "routines"

    def _to_entity(self, model: RoutineModel) -> RoutineEntity:
        return routine_to_entity(model)

    def create(self, fields: dict) -> str:
        return self._create(validate_new_routine(fields))

    def update(self, routine_id: str, fields: dict) -> None:
        self._update(routine_id, validate_routine_update(fields))

    def get(self, routine_id: str) -> RoutineEntity | None:
        with self.session() as session:
            record = self._get_owned(session, routine_id)
            return routine_to_entity(record) if record else None
