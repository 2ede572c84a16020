# tests/test_aggregate.py

from __future__ import annotations

from daystamp.tasks.aggregate import (
    day_progress,
    month_calendar,
    stamped_dates,
    tasks_by_date,
    tasks_for_day,
    week_schedule,
)
from daystamp.tasks.task_models import Task, TaskDraft
from daystamp.tasks.task_store import TaskStore


def _task(tid: str, due: str, at: str = "09:00", *, done: bool = False, recurring: bool = False) -> Task:
    return Task(
        id=tid,
        title=f"task {tid}",
        description="",
        due_date=due,
        time=at,
        is_completed=done,
        is_recurring=recurring,
    )


def test_buckets_include_recurring_tasks_ordered_by_time() -> None:
    tasks = [
        _task("a", "2024-05-01", "18:00"),
        _task("b", "2024-05-01", "07:00", recurring=True),
        _task("c", "2024-05-02", "12:00"),
    ]
    buckets = tasks_by_date(tasks)

    assert set(buckets) == {"2024-05-01", "2024-05-02"}
    assert [t.id for t in buckets["2024-05-01"]] == ["b", "a"]
    assert [t.id for t in tasks_for_day(tasks, "2024-05-01")] == ["b", "a"]
    assert tasks_for_day(tasks, "2024-05-03") == []


def test_stamped_day_requires_all_tasks_completed() -> None:
    tasks = [_task("a", "2024-05-01", done=True), _task("b", "2024-05-01", done=True)]
    assert stamped_dates(tasks) == {"2024-05-01"}

    tasks.append(_task("c", "2024-05-01", done=False))
    assert stamped_dates(tasks) == set()


def test_stamped_days_follow_store_mutations(store: TaskStore) -> None:
    a = store.add(TaskDraft(title="A", due_date="2024-05-01"))
    b = store.add(TaskDraft(title="B", due_date="2024-05-01"))
    store.toggle(a.id)
    store.toggle(b.id)
    assert "2024-05-01" in stamped_dates(store.tasks)

    store.add(TaskDraft(title="C", due_date="2024-05-01"))
    assert "2024-05-01" not in stamped_dates(store.tasks)


def test_completing_recurring_task_stamps_its_day_not_the_next() -> None:
    tasks = [_task("r", "2024-05-01", done=True, recurring=True), _task("r2", "2024-05-02", recurring=True)]
    assert stamped_dates(tasks) == {"2024-05-01"}


def test_empty_day_is_never_stamped() -> None:
    assert stamped_dates([]) == set()


def test_day_progress_counts_and_flags() -> None:
    tasks = [
        _task("a", "2024-05-01", done=True),
        _task("b", "2024-05-01"),
        _task("c", "2024-05-01", done=True),
        _task("d", "2024-05-02", done=True),
    ]
    p = day_progress(tasks, "2024-05-01")
    assert (p.completed, p.total) == (2, 3)
    assert round(p.percentage, 2) == 66.67
    assert p.all_done is False

    done_day = day_progress(tasks, "2024-05-02")
    assert done_day.all_done is True
    assert done_day.percentage == 100.0

    empty = day_progress(tasks, "2024-05-03")
    assert (empty.completed, empty.total, empty.percentage, empty.all_done) == (0, 0, 0.0, False)


def test_month_calendar_cells_preview_and_overflow() -> None:
    tasks = [
        _task("a", "2024-02-10", "08:00"),
        _task("b", "2024-02-10", "07:00"),
        _task("c", "2024-02-10", "21:00"),
        _task("d", "2024-02-29", done=True),
        _task("x", "2024-03-01"),
    ]
    cells = month_calendar(tasks, 2024, 2)

    assert len(cells) == 29
    assert cells[0].date == "2024-02-01"
    assert cells[0].weekday == 3  # Thursday

    tenth = cells[9]
    assert tenth.day == 10
    assert [t.id for t in tenth.preview] == ["b", "a"]
    assert tenth.overflow == 1
    assert tenth.stamped is False

    leap = cells[-1]
    assert leap.date == "2024-02-29"
    assert leap.stamped is True
    assert leap.overflow == 0


def test_week_schedule_spans_month_boundary() -> None:
    tasks = [_task("a", "2024-01-30"), _task("b", "2024-02-02")]
    week = week_schedule(tasks, "2024-01-29")

    assert [d for d, _ in week] == [
        "2024-01-29",
        "2024-01-30",
        "2024-01-31",
        "2024-02-01",
        "2024-02-02",
        "2024-02-03",
        "2024-02-04",
    ]
    assert [t.id for t in week[1][1]] == ["a"]
    assert [t.id for t in week[4][1]] == ["b"]
    assert week[0][1] == []
