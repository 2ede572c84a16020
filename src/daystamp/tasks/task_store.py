# src/daystamp/tasks/task_store.py

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from ..core.errors import NotFoundError, PersistenceError, ValidationError
from ..core.ports import KeyValueStorage
from .migrations import dump_task_records, load_task_records
from .recurrence import new_task_id, next_occurrence
from .task_models import (
    Task,
    TaskDraft,
    TaskTag,
    validate_date,
    validate_time,
    validate_year_month,
)

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
GOALS_KEY = "monthlyGoals"

DeleteListener = Callable[[str], None]


class TaskStore:
    """
    In-memory task collection with key-value persistence.

    The store is the only owner of the task list and monthly goals:
    - the list is kept sorted by (due_date, time) after every mutation
    - every mutation is saved right away; a failed save is logged and
      retried on the next mutation (or on dispose)
    - storage failures never propagate, memory stays authoritative

    Not thread-safe: callers share one lock around all store access.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._tasks: list[Task] = []
        self._goals: dict[str, str] = {}
        self._delete_listeners: list[DeleteListener] = []
        self._dirty = False

    # ---- lifecycle ----

    def init(self) -> None:
        """Load persisted tasks/goals. Any failure leaves empty defaults."""
        self._tasks = load_task_records(self._load_json(TASKS_KEY))
        self._sort()

        goals = self._load_json(GOALS_KEY)
        if isinstance(goals, dict):
            self._goals = {str(k): str(v) for k, v in goals.items() if isinstance(v, str)}
        else:
            self._goals = {}

        logger.info("TaskStore ready tasks=%d goals=%d", len(self._tasks), len(self._goals))

    def dispose(self) -> None:
        if self._dirty:
            self._save()
        self._delete_listeners.clear()

    def on_task_deleted(self, listener: DeleteListener) -> None:
        self._delete_listeners.append(listener)

    # ---- persistence helpers ----

    def _load_json(self, key: str) -> Any:
        try:
            raw = self._storage.get(key)
        except PersistenceError:
            logger.exception("Failed to read %r from storage; starting empty", key)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.exception("Stored %r is not valid JSON; starting empty", key)
            return None

    def _save(self) -> None:
        try:
            self._storage.set(TASKS_KEY, json.dumps(dump_task_records(self._tasks), ensure_ascii=False))
            self._storage.set(GOALS_KEY, json.dumps(self._goals, ensure_ascii=False))
        except PersistenceError:
            self._dirty = True
            logger.exception("Failed to save tasks; keeping state in memory only")
            return
        self._dirty = False

    def _sort(self) -> None:
        self._tasks.sort(key=lambda t: t.sort_key)

    def _index_of(self, task_id: str) -> int:
        for i, t in enumerate(self._tasks):
            if t.id == task_id:
                return i
        return -1

    # ---- read API ----

    @property
    def tasks(self) -> list[Task]:
        """Snapshot of the sorted collection (the list is a copy, tasks are live)."""
        return list(self._tasks)

    @property
    def monthly_goals(self) -> dict[str, str]:
        return dict(self._goals)

    def __len__(self) -> int:
        return len(self._tasks)

    def get(self, task_id: str) -> Task | None:
        i = self._index_of(task_id)
        return self._tasks[i] if i >= 0 else None

    def find_by_prefix(self, prefix: str) -> Task:
        """Resolve a full id or a unique id prefix (as typed at the console)."""
        prefix = (prefix or "").strip().lower()
        if not prefix:
            raise NotFoundError("empty task id")
        for t in self._tasks:
            if t.id.lower() == prefix:
                return t
        matches = [t for t in self._tasks if t.id.lower().startswith(prefix)]
        if not matches:
            raise NotFoundError(f"no task with id {prefix!r}")
        if len(matches) > 1:
            raise NotFoundError(f"id prefix {prefix!r} is ambiguous ({len(matches)} tasks)")
        return matches[0]

    def monthly_goal(self, year_month: str) -> str:
        return self._goals.get(year_month, "")

    # ---- mutations ----

    def add(self, draft: TaskDraft) -> Task:
        title = (draft.title or "").strip()
        if not title:
            raise ValidationError("title is required")

        task = Task(
            id=new_task_id(),
            title=title,
            description=(draft.description or "").strip(),
            due_date=validate_date(draft.due_date),
            time=validate_time(draft.time),
            is_completed=False,
            is_recurring=bool(draft.is_recurring),
            tag=TaskTag.parse(draft.tag),
        )
        self._tasks.append(task)
        self._sort()
        self._save()
        logger.debug("Task added id=%s due=%s %s recurring=%s", task.id, task.due_date, task.time, task.is_recurring)
        return task

    def toggle(self, task_id: str) -> Task | None:
        """
        Flip completion of a task. Unknown ids are a no-op (returns None).

        Completing a recurring task appends its next-day successor.
        """
        i = self._index_of(task_id)
        if i < 0:
            logger.debug("toggle: unknown task id=%s", task_id)
            return None

        task = self._tasks[i]
        task.is_completed = not task.is_completed

        if task.is_completed and task.is_recurring:
            successor = next_occurrence(task)
            self._tasks.append(successor)
            logger.info("Recurring task %s completed; next occurrence %s on %s", task.id, successor.id, successor.due_date)

        self._sort()
        self._save()
        return task

    def delete(self, task_id: str) -> bool:
        """Remove a task if present. Deleting an unknown id is not an error."""
        i = self._index_of(task_id)
        if i < 0:
            return False

        del self._tasks[i]
        self._save()
        for listener in list(self._delete_listeners):
            try:
                listener(task_id)
            except Exception:
                logger.exception("Delete listener failed task_id=%s", task_id)
        logger.debug("Task deleted id=%s", task_id)
        return True

    def set_monthly_goal(self, year_month: str, text: str) -> None:
        """Upsert the goal for YYYY-MM. An empty text is stored as-is (the key stays)."""
        validate_year_month(year_month)
        text = text or ""
        if self._goals.get(year_month) == text and not self._dirty:
            return
        self._goals[year_month] = text
        self._save()
