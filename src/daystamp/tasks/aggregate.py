# src/daystamp/tasks/aggregate.py

"""
Read-only views derived from the task collection.

Nothing here is stored: every view is recomputed from the current task list.
All tasks are bucketed by due date, recurring or not; recurrence only decides
what gets inserted into the store, never how days are aggregated.
"""

from __future__ import annotations

import calendar
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from .task_models import Task, format_date


@dataclass(slots=True, frozen=True)
class DayProgress:
    completed: int
    total: int

    @property
    def percentage(self) -> float:
        return (self.completed / self.total) * 100 if self.total > 0 else 0.0

    @property
    def all_done(self) -> bool:
        return self.total > 0 and self.completed == self.total


@dataclass(slots=True, frozen=True)
class CalendarDay:
    """One cell of the month grid."""

    date: str
    weekday: int  # 0=Monday ... 6=Sunday
    preview: list[Task] = field(default_factory=list)
    overflow: int = 0
    stamped: bool = False

    @property
    def day(self) -> int:
        return int(self.date[-2:])


def tasks_by_date(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    """Map due date -> tasks due that day, ordered by time."""
    buckets: dict[str, list[Task]] = defaultdict(list)
    for t in tasks:
        buckets[t.due_date].append(t)
    for bucket in buckets.values():
        bucket.sort(key=lambda t: t.time)
    return dict(buckets)


def tasks_for_day(tasks: Iterable[Task], day: str) -> list[Task]:
    return sorted((t for t in tasks if t.due_date == day), key=lambda t: t.time)


def _counts(tasks: Iterable[Task]) -> dict[str, list[int]]:
    # date -> [completed, total]
    counts: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for t in tasks:
        c = counts[t.due_date]
        c[1] += 1
        if t.is_completed:
            c[0] += 1
    return counts


def stamped_dates(tasks: Iterable[Task]) -> set[str]:
    """Dates with at least one task where every task is completed."""
    return {d for d, (completed, total) in _counts(tasks).items() if total > 0 and completed == total}


def day_progress(tasks: Iterable[Task], day: str) -> DayProgress:
    total = completed = 0
    for t in tasks:
        if t.due_date != day:
            continue
        total += 1
        if t.is_completed:
            completed += 1
    return DayProgress(completed=completed, total=total)


def month_calendar(
    tasks: Iterable[Task],
    year: int,
    month: int,
    *,
    preview_limit: int = 2,
) -> list[CalendarDay]:
    """
    Cells for every day of the month.

    Each cell previews the first `preview_limit` tasks of the day (by time)
    and reports how many more there are.
    """
    task_list = list(tasks)
    buckets = tasks_by_date(task_list)
    stamps = stamped_dates(task_list)
    limit = max(0, int(preview_limit))

    cells: list[CalendarDay] = []
    _, days_in_month = calendar.monthrange(year, month)
    for n in range(1, days_in_month + 1):
        d = date(year, month, n)
        key = format_date(d)
        day_tasks = buckets.get(key, [])
        cells.append(
            CalendarDay(
                date=key,
                weekday=d.weekday(),
                preview=day_tasks[:limit],
                overflow=max(0, len(day_tasks) - limit),
                stamped=key in stamps,
            )
        )
    return cells


def week_schedule(tasks: Iterable[Task], start: str) -> list[tuple[str, list[Task]]]:
    """Seven consecutive days starting at `start`, each with its tasks by time."""
    buckets = tasks_by_date(tasks)
    first = date.fromisoformat(start)
    out: list[tuple[str, list[Task]]] = []
    for i in range(7):
        key = format_date(first + timedelta(days=i))
        out.append((key, buckets.get(key, [])))
    return out
