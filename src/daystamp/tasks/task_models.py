# src/daystamp/tasks/task_models.py

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from datetime import time as dtime
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError

DEFAULT_TIME = "09:00"

_DATE_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$")
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
_YEAR_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class TaskTag(StrEnum):
    """
    Closed category set.

    Values are the stored (Japanese) labels; English aliases are accepted on input.
    """

    WORK = "仕事"
    PERSONAL = "プライベート"
    SCHOOL = "学校"
    OTHER = "その他"

    @classmethod
    def parse(cls, raw: str | TaskTag) -> TaskTag:
        """Strict parse: stored value or English alias, else ValidationError."""
        if isinstance(raw, TaskTag):
            return raw
        s = (raw or "").strip()
        try:
            return cls(s)
        except ValueError:
            pass
        alias = s.upper()
        if alias in cls.__members__:
            return cls[alias]
        raise ValidationError(f"unknown tag: {raw!r}")

    @classmethod
    def from_db(cls, raw: Any) -> TaskTag:
        if not raw or not isinstance(raw, str):
            return cls.OTHER
        try:
            return cls.parse(raw)
        except ValidationError:
            return cls.OTHER

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(slots=True)
class Task:
    id: str
    title: str
    description: str
    due_date: str  # YYYY-MM-DD
    time: str  # HH:MM
    is_completed: bool
    is_recurring: bool
    tag: TaskTag = TaskTag.OTHER

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.due_date, self.time)

    @property
    def due_at(self) -> datetime:
        """Naive local datetime of the due moment."""
        return combine_due(self.due_date, self.time)

    def to_record(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "dueDate": self.due_date,
            "time": self.time,
            "isCompleted": self.is_completed,
            "isRecurring": self.is_recurring,
            "tag": self.tag.value,
        }


@dataclass(slots=True, frozen=True)
class TaskDraft:
    """Everything a new Task needs except id and completion state."""

    title: str
    due_date: str
    time: str = DEFAULT_TIME
    description: str = ""
    is_recurring: bool = False
    tag: TaskTag | str = TaskTag.OTHER


def is_valid_date(value: str) -> bool:
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def is_valid_time(value: str) -> bool:
    return isinstance(value, str) and bool(_TIME_RE.match(value))


def validate_date(value: str) -> str:
    if not is_valid_date(value):
        raise ValidationError(f"due date must be YYYY-MM-DD, got {value!r}")
    return value


def validate_time(value: str) -> str:
    if not is_valid_time(value):
        raise ValidationError(f"time must be HH:MM, got {value!r}")
    return value


def validate_year_month(value: str) -> str:
    if not isinstance(value, str) or not _YEAR_MONTH_RE.match(value):
        raise ValidationError(f"month key must be YYYY-MM, got {value!r}")
    return value


def format_date(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def year_month_of(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def combine_due(due_date: str, hhmm: str) -> datetime:
    hour, minute = (int(p) for p in hhmm.split(":"))
    return datetime.combine(date.fromisoformat(due_date), dtime(hour, minute))
