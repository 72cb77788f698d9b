from __future__ import annotations

from enum import IntEnum, StrEnum


class Weekday(IntEnum):
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


class AIProvider(StrEnum):
    MOCK = "mock"
    GEMINI = "gemini"
    OPENAI = "openai"


class TaskFilterKey(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    ROUTINE = "routine"
