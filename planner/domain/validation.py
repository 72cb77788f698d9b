from __future__ import annotations

from datetime import date, datetime
from typing import Any

from .calendar import start_of_day
from .errors import ValidationError

TASK_UPDATE_FIELDS = {"title", "due_date", "is_completed"}
ROUTINE_UPDATE_FIELDS = {"title", "frequency", "start_date"}


def coerce_date(value: Any, field: str) -> date:
    if isinstance(value, (datetime, date)):
        return start_of_day(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            if "T" in text or " " in text:
                return start_of_day(datetime.fromisoformat(text))
            return date.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"{field} is not an ISO date: {value!r}") from exc
    raise ValidationError(f"{field} is required")


def _title(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("title must be a non-empty string")
    return value.strip()


def _frequency(value: Any) -> list[int]:
    if isinstance(value, (str, bytes)) or value is None:
        raise ValidationError("frequency must be a collection of weekday indices")
    try:
        days = {int(day) for day in value}
    except (TypeError, ValueError) as exc:
        raise ValidationError("frequency must contain integers 0-6") from exc
    if not days:
        raise ValidationError("frequency must name at least one weekday")
    if any(day < 0 or day > 6 for day in days):
        raise ValidationError("frequency must contain integers 0-6")
    return sorted(days)


def validate_new_task(data: dict) -> dict:
    routine_id = data.get("routine_id") or None
    is_routine = bool(data.get("is_routine", routine_id is not None))
    if is_routine != (routine_id is not None):
        raise ValidationError("routine tasks must carry a routine_id and manual tasks must not")
    return {
        "title": _title(data.get("title")),
        "due_date": coerce_date(data.get("due_date"), "due_date"),
        "is_completed": bool(data.get("is_completed", False)),
        "is_routine": is_routine,
        "routine_id": routine_id,
    }


def validate_task_update(data: dict) -> dict:
    unknown = set(data) - TASK_UPDATE_FIELDS
    if unknown:
        raise ValidationError(f"cannot update task fields: {', '.join(sorted(unknown))}")
    normalized: dict = {}
    if "title" in data:
        normalized["title"] = _title(data["title"])
    if "due_date" in data:
        normalized["due_date"] = coerce_date(data["due_date"], "due_date")
    if "is_completed" in data:
        normalized["is_completed"] = bool(data["is_completed"])
    return normalized


def validate_new_routine(data: dict) -> dict:
    return {
        "title": _title(data.get("title")),
        "frequency": _frequency(data.get("frequency")),
        "start_date": coerce_date(data.get("start_date"), "start_date"),
    }


def validate_routine_update(data: dict) -> dict:
    unknown = set(data) - ROUTINE_UPDATE_FIELDS
    if unknown:
        raise ValidationError(f"cannot update routine fields: {', '.join(sorted(unknown))}")
    normalized: dict = {}
    if "title" in data:
        normalized["title"] = _title(data["title"])
    if "frequency" in data:
        normalized["frequency"] = _frequency(data["frequency"])
    if "start_date" in data:
        normalized["start_date"] = coerce_date(data["start_date"], "start_date")
    return normalized
