from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .enums import TaskFilterKey


@dataclass(frozen=True)
class TaskFilters:
    filter_key: TaskFilterKey = TaskFilterKey.ALL
    search: str | None = None
    due_on: Optional[date] = None
