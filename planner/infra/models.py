from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Index, String

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid4().hex


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    due_date = Column(Date, nullable=False)
    is_completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_routine = Column(Boolean, nullable=False, default=False)
    # No foreign key: completed instances outlive their routine.
    routine_id = Column(String(32), nullable=True)

    __table_args__ = (
        Index("ix_tasks_user_routine_due", "user_id", "routine_id", "due_date"),
    )


class RoutineModel(Base):
    __tablename__ = "routines"

    id = Column(String(32), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    frequency = Column(JSON, nullable=False)
    start_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
