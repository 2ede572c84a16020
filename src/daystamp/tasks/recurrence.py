# src/daystamp/tasks/recurrence.py

from __future__ import annotations

import uuid
from datetime import date, timedelta

from .task_models import Task, format_date


def new_task_id() -> str:
    return uuid.uuid4().hex


def next_due_date(due_date: str) -> str:
    """The following calendar day, rolling over month/year/leap boundaries."""
    return format_date(date.fromisoformat(due_date) + timedelta(days=1))


def next_occurrence(task: Task) -> Task:
    """
    Successor of a just-completed recurring task.

    The successor is due one day later at the same time and starts incomplete
    with a fresh id. The completed original is left untouched; completion
    history accumulates. Un-completing the original later does not retract
    the successor.
    """
    return Task(
        id=new_task_id(),
        title=task.title,
        description=task.description,
        due_date=next_due_date(task.due_date),
        time=task.time,
        is_completed=False,
        is_recurring=task.is_recurring,
        tag=task.tag,
    )
