# src/daystamp/tasks/migrations.py

"""
Stored task record upgrades.

Older snapshots of the app wrote task records without some fields:
- v0: no "time"
- v1: no "isRecurring"
- v2: no "tag"
- v3: current shape

Loading goes in two steps:
1) each JSON object is upgraded to the current version by applying the
   missing migration steps in order (dict -> dict);
2) the permissive RawTaskRecord is mapped to the strict Task, field by field,
   with defaults for anything malformed.

Records that cannot become a valid Task (no title, unusable due date) are
dropped with a warning rather than failing the whole load.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .recurrence import new_task_id
from .task_models import DEFAULT_TIME, Task, TaskTag, is_valid_date, is_valid_time

logger = logging.getLogger(__name__)

CURRENT_VERSION = 3

Record = dict[str, Any]


def _v0_to_v1(rec: Record) -> Record:
    rec["time"] = rec.get("time") or DEFAULT_TIME
    return rec


def _v1_to_v2(rec: Record) -> Record:
    rec["isRecurring"] = bool(rec.get("isRecurring") or False)
    return rec


def _v2_to_v3(rec: Record) -> Record:
    rec["tag"] = rec.get("tag") or TaskTag.OTHER.value
    return rec


# (target_version, step)
MIGRATIONS: list[tuple[int, Callable[[Record], Record]]] = [
    (1, _v0_to_v1),
    (2, _v1_to_v2),
    (3, _v2_to_v3),
]


def detect_version(rec: Record) -> int:
    if "tag" in rec:
        return 3
    if "isRecurring" in rec:
        return 2
    if "time" in rec:
        return 1
    return 0


def upgrade_record(rec: Record) -> Record:
    """Return a copy of `rec` carrying every field of the current version."""
    out = dict(rec)
    version = detect_version(out)
    for target, step in MIGRATIONS:
        if version < target:
            out = step(out)
            version = target
    return out


@dataclass(slots=True)
class RawTaskRecord:
    """Loosely-typed view of one stored record (anything may be missing or wrong)."""

    id: Any = None
    title: Any = None
    description: Any = None
    due_date: Any = None
    time: Any = None
    is_completed: Any = None
    is_recurring: Any = None
    tag: Any = None

    @classmethod
    def from_obj(cls, obj: Record) -> RawTaskRecord:
        return cls(
            id=obj.get("id"),
            title=obj.get("title"),
            description=obj.get("description"),
            due_date=obj.get("dueDate"),
            time=obj.get("time"),
            is_completed=obj.get("isCompleted"),
            is_recurring=obj.get("isRecurring"),
            tag=obj.get("tag"),
        )

    def to_task(self) -> Task | None:
        title = str(self.title).strip() if self.title is not None else ""
        if not title:
            return None
        if not is_valid_date(self.due_date):
            return None

        task_id = str(self.id).strip() if self.id not in (None, "") else ""
        return Task(
            id=task_id or new_task_id(),
            title=title,
            description=self.description if isinstance(self.description, str) else "",
            due_date=self.due_date,
            time=self.time if is_valid_time(self.time) else DEFAULT_TIME,
            is_completed=self.is_completed is True,
            is_recurring=self.is_recurring is True,
            tag=TaskTag.from_db(self.tag),
        )


def load_task_records(data: Any) -> list[Task]:
    """Upgrade and convert a parsed "tasks" blob. Duplicate ids keep the first record."""
    if not isinstance(data, list):
        if data is not None:
            logger.warning("Stored tasks blob is not a list (%s); ignoring it", type(data).__name__)
        return []

    out: list[Task] = []
    seen: set[str] = set()
    for i, obj in enumerate(data):
        if not isinstance(obj, dict):
            logger.warning("Skipping stored task #%d: not an object", i)
            continue
        task = RawTaskRecord.from_obj(upgrade_record(obj)).to_task()
        if task is None:
            logger.warning("Skipping stored task #%d: missing title or invalid dueDate", i)
            continue
        if task.id in seen:
            logger.warning("Skipping stored task #%d: duplicate id %s", i, task.id)
            continue
        seen.add(task.id)
        out.append(task)
    return out


def dump_task_records(tasks: Iterable[Task]) -> list[Record]:
    return [t.to_record() for t in tasks]
