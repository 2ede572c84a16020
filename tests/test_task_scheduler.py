# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
import json
import threading
from datetime import datetime, timedelta

import pytest

from daystamp.tasks.task_models import TaskDraft, format_date
from daystamp.tasks.task_scheduler import (
    NOTIFIED_KEY,
    NotificationScheduler,
    run_notification_scheduler,
    start_reminders_in_background,
)
from daystamp.tasks.task_store import TaskStore

from .fakes import FakeNotifier, FixedClock, InMemoryStorage

NOW = datetime(2024, 5, 1, 12, 0)


def _add_due_in(store: TaskStore, minutes: int, title: str = "t", **kw):
    due = NOW + timedelta(minutes=minutes)
    return store.add(
        TaskDraft(title=title, due_date=format_date(due.date()), time=due.strftime("%H:%M"), **kw)
    )


def _scheduler(store: TaskStore, notifier: FakeNotifier, storage: InMemoryStorage, clock: FixedClock | None = None):
    s = NotificationScheduler(store, notifier, storage, clock=clock or FixedClock(NOW))
    s.init()
    return s


def test_due_soon_task_fires_exactly_once(store, notifier, storage) -> None:
    task = _add_due_in(store, 20, title="Call dentist")
    scheduler = _scheduler(store, notifier, storage)

    for _ in range(5):
        scheduler.sweep()

    assert len(notifier.fired) == 1
    assert notifier.fired[0].title == "Call dentist"
    assert "12:20" in notifier.fired[0].body
    assert task.id in scheduler.notified


def test_task_outside_window_waits_until_it_enters(store, notifier, storage) -> None:
    _add_due_in(store, 40)
    clock = FixedClock(NOW)
    scheduler = _scheduler(store, notifier, storage, clock)

    scheduler.sweep()
    assert notifier.fired == []

    clock.now = NOW + timedelta(minutes=9)  # 31 minutes left
    scheduler.sweep()
    assert notifier.fired == []

    clock.now = NOW + timedelta(minutes=10)  # exactly 30 minutes left
    scheduler.sweep()
    scheduler.sweep()
    assert len(notifier.fired) == 1


def test_overdue_task_is_never_notified(store, notifier, storage) -> None:
    _add_due_in(store, -5)
    clock = FixedClock(NOW)
    scheduler = _scheduler(store, notifier, storage, clock)

    for minutes in (0, 1, 30, 60 * 24):
        clock.now = NOW + timedelta(minutes=minutes)
        scheduler.sweep()

    assert notifier.fired == []
    assert len(scheduler.notified) == 0


def test_task_due_right_now_is_not_notified(store, notifier, storage) -> None:
    _add_due_in(store, 0)
    scheduler = _scheduler(store, notifier, storage)
    assert scheduler.sweep() == []


def test_completed_tasks_are_skipped(store, notifier, storage) -> None:
    task = _add_due_in(store, 10)
    store.toggle(task.id)
    scheduler = _scheduler(store, notifier, storage)
    assert scheduler.sweep() == []


def test_not_permitted_skips_silently_without_marking(store, storage) -> None:
    notifier = FakeNotifier(permitted=False)
    task = _add_due_in(store, 15)
    scheduler = _scheduler(store, notifier, storage)

    assert scheduler.sweep() == []
    assert task.id not in scheduler.notified
    assert notifier.permission_requests == 1

    notifier.permitted = True
    assert [t.id for t in scheduler.sweep()] == [task.id]


def test_failing_notifier_does_not_mark_task(store, storage) -> None:
    notifier = FakeNotifier(broken=True)
    task = _add_due_in(store, 15)
    scheduler = _scheduler(store, notifier, storage)

    assert scheduler.sweep() == []
    assert task.id not in scheduler.notified


def test_delete_purges_notified_id(store, notifier, storage) -> None:
    task = _add_due_in(store, 10)
    scheduler = _scheduler(store, notifier, storage)
    scheduler.sweep()
    assert task.id in scheduler.notified
    assert json.loads(storage.data[NOTIFIED_KEY]) == [task.id]

    assert store.delete(task.id) is True
    assert task.id not in scheduler.notified
    assert json.loads(storage.data[NOTIFIED_KEY]) == []

    assert store.delete("unknown-id") is False


def test_notified_ids_survive_reload(storage) -> None:
    store = TaskStore(storage)
    store.init()
    _add_due_in(store, 10)
    first = FakeNotifier()
    _scheduler(store, first, storage).sweep()
    assert len(first.fired) == 1

    reloaded = TaskStore(storage)
    reloaded.init()
    second = FakeNotifier()
    _scheduler(reloaded, second, storage).sweep()
    assert second.fired == []


def test_recurrence_successor_starts_silent(store, notifier, storage) -> None:
    clock = FixedClock(NOW)
    task = _add_due_in(store, 10, is_recurring=True)
    scheduler = _scheduler(store, notifier, storage, clock)
    scheduler.sweep()
    store.toggle(task.id)

    clock.now = NOW + timedelta(days=1)  # successor is due in 10 minutes
    fired = scheduler.sweep()
    assert len(fired) == 1
    assert fired[0].id != task.id
    assert len(notifier.fired) == 2


def test_corrupt_notified_blob_starts_empty(store, notifier) -> None:
    storage = InMemoryStorage({NOTIFIED_KEY: "oops"})
    scheduler = _scheduler(store, notifier, storage)
    assert len(scheduler.notified) == 0


@pytest.mark.asyncio
async def test_polling_loop_sweeps_immediately_and_stops_on_cancel(store, notifier, storage) -> None:
    due = datetime.now() + timedelta(minutes=20)
    store.add(TaskDraft(title="soon", due_date=format_date(due.date()), time=due.strftime("%H:%M")))
    scheduler = NotificationScheduler(store, notifier, storage)
    scheduler.init()

    runner = asyncio.create_task(run_notification_scheduler(scheduler, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(notifier.fired) == 1, "Scheduler should fire exactly one reminder"


def test_background_runner_stops_on_request(store, notifier, storage) -> None:
    scheduler = NotificationScheduler(store, notifier, storage)
    scheduler.init()
    lock = threading.RLock()

    runner = start_reminders_in_background(scheduler, interval_seconds=0.01, lock=lock)
    assert runner is not None
    assert runner.is_alive()

    runner.stop()
    runner.join(timeout=5.0)
    assert not runner.is_alive()


def test_permission_revoked_at_fire_time_marks_nothing(store, storage) -> None:
    notifier = FakeNotifier(deny_on_fire=True)
    _add_due_in(store, 5, title="a")
    _add_due_in(store, 6, title="b")
    scheduler = _scheduler(store, notifier, storage)

    assert scheduler.sweep() == []
    assert len(scheduler.notified) == 0

    notifier.deny_on_fire = False
    assert [t.title for t in scheduler.sweep()] == ["a", "b"]


def test_init_drops_notified_ids_without_a_task(store, notifier) -> None:
    task = _add_due_in(store, 10)
    storage = InMemoryStorage({NOTIFIED_KEY: json.dumps(["ghost", task.id, "skipped-at-load"])})

    scheduler = _scheduler(store, notifier, storage)

    assert len(scheduler.notified) == 1
    assert task.id in scheduler.notified
    assert json.loads(storage.data[NOTIFIED_KEY]) == [task.id]
    assert scheduler.sweep() == []
