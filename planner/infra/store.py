from __future__ import annotations

import logging

from sqlalchemy.orm import sessionmaker

from .batch import WriteBatch, apply_batch
from .repository import RoutineRepository, TaskRepository

logger = logging.getLogger(__name__)


class PlannerStore:
    def __init__(self, session_factory: sessionmaker | None, user_id: str | None) -> None:
        self.user_id = user_id
        self.tasks = TaskRepository(session_factory, user_id)
        self.routines = RoutineRepository(session_factory, user_id)

    @property
    def is_ready(self) -> bool:
        return self.tasks.is_ready

    def batch(self) -> WriteBatch:
        return WriteBatch()

    def commit(self, batch: WriteBatch) -> list[str]:
        if not batch:
            return []
        with self.tasks.transaction() as session:
            created = apply_batch(session, self.user_id, batch)
        logger.info("committed batch of %d operations (%d created)", len(batch), len(created))
        # Routines before tasks.
        if "routines" in batch.collections:
            self.routines.publish()
        if "tasks" in batch.collections:
            self.tasks.publish()
        return created
