# src/daystamp/tasks/task_scheduler.py

from __future__ import annotations

"""
Due-soon reminders.

A small polling loop that:
- scans incomplete tasks,
- fires one alert per task when its due moment is within the lookahead window,
- remembers fired ids (persisted) so reloads do not re-send.

Per task the state is one-way: silent -> notified. Only deleting the task
drops its id. Tasks that are already overdue are never reminded; there are
no late reminders.
"""

import asyncio
import contextlib
import json
import logging
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.errors import PermissionDenied, PersistenceError
from ..core.ports import KeyValueStorage, Notifier
from .task_models import Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)

NOTIFIED_KEY = "notifiedTaskIds"
DEFAULT_LOOKAHEAD = timedelta(minutes=30)

Clock = Callable[[], datetime]


class NotifiedSet:
    """Persisted set of task ids that already got their reminder."""

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self._ids: set[str] = set()
        self._dirty = False

    def load(self) -> None:
        try:
            raw = self._storage.get(NOTIFIED_KEY)
        except PersistenceError:
            logger.exception("Failed to read notified ids; starting empty")
            raw = None

        ids: set[str] = set()
        if raw:
            try:
                data = json.loads(raw)
            except ValueError:
                logger.warning("Stored notified ids are not valid JSON; ignoring")
                data = []
            if isinstance(data, list):
                ids = {str(x) for x in data if isinstance(x, str) and x}
        self._ids = ids

    def save(self) -> None:
        try:
            self._storage.set(NOTIFIED_KEY, json.dumps(sorted(self._ids)))
        except PersistenceError:
            self._dirty = True
            logger.exception("Failed to save notified ids; keeping them in memory only")
            return
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, task_id: str) -> None:
        self._ids.add(task_id)
        self.save()

    def discard(self, task_id: str) -> bool:
        if task_id not in self._ids:
            return False
        self._ids.discard(task_id)
        self.save()
        return True

    def retain(self, task_ids: Iterable[str]) -> int:
        """Drop every id not in `task_ids`; returns how many were dropped."""
        stale = self._ids.difference(task_ids)
        if stale:
            self._ids -= stale
            self.save()
        return len(stale)


def due_soon(task: Task, now: datetime, lookahead: timedelta = DEFAULT_LOOKAHEAD) -> bool:
    """True if `task` is incomplete and due within (now, now + lookahead]."""
    if task.is_completed:
        return False
    delta = task.due_at - now
    return timedelta(0) < delta <= lookahead


def build_alert(task: Task, now: datetime) -> tuple[str, str]:
    minutes = max(1, int((task.due_at - now).total_seconds() // 60))
    body = f"Due at {task.time} (in {minutes} min)"
    if task.description:
        body = f"{body}: {task.description}"
    return task.title, body


class NotificationScheduler:
    """
    Sweeps the store for tasks entering the due-soon window.

    Wiring:
    - reads the TaskStore (never mutates it)
    - owns the NotifiedSet and registers itself as a delete listener on the
      store, so deleted ids are purged
    """

    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        storage: KeyValueStorage,
        *,
        lookahead: timedelta = DEFAULT_LOOKAHEAD,
        clock: Clock = datetime.now,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._notified = NotifiedSet(storage)
        self._lookahead = lookahead
        self._clock = clock
        store.on_task_deleted(self.forget)

    @property
    def notified(self) -> NotifiedSet:
        return self._notified

    def init(self) -> None:
        self._notified.load()
        pruned = self._notified.retain(t.id for t in self._store.tasks)
        if pruned:
            logger.info("Dropped %d notified ids with no matching task", pruned)
        try:
            permitted = self._notifier.request_permission()
        except Exception:
            logger.exception("Notification permission request failed")
            permitted = False
        logger.info(
            "NotificationScheduler ready notified=%d permitted=%s lookahead=%s",
            len(self._notified),
            permitted,
            self._lookahead,
        )

    def dispose(self) -> None:
        if self._notified.dirty:
            self._notified.save()

    def forget(self, task_id: str) -> None:
        if self._notified.discard(task_id):
            logger.debug("Purged notified id=%s", task_id)

    def sweep(self, now: datetime | None = None) -> list[Task]:
        """
        One pass over pending tasks. Returns the tasks alerted in this pass.

        Repeated sweeps never alert a task twice: NotifiedSet membership is
        the only guard.
        """
        if now is None:
            now = self._clock()

        if not self._is_permitted():
            return []

        fired: list[Task] = []
        for task in self._candidates(self._store.tasks):
            if not due_soon(task, now, self._lookahead):
                continue

            title, body = build_alert(task, now)
            try:
                self._notifier.fire(title, body)
            except PermissionDenied:
                logger.debug("Notifier refused to fire (permission revoked); skipping sweep.")
                break
            except Exception:
                logger.exception("Notifier failed task_id=%s", task.id)
                continue

            self._notified.add(task.id)
            fired.append(task)
            logger.info("Reminder fired task_id=%s due=%s %s", task.id, task.due_date, task.time)
        return fired

    def _candidates(self, tasks: Iterable[Task]) -> Iterable[Task]:
        for t in tasks:
            if not t.is_completed and t.id not in self._notified:
                yield t

    def _is_permitted(self) -> bool:
        try:
            return bool(self._notifier.is_permitted())
        except Exception:
            logger.debug("Notifier permission check failed.", exc_info=True)
            return False


async def run_notification_scheduler(
        scheduler: NotificationScheduler,
        *,
        interval_seconds: float = 60.0,
        lock: threading.RLock | None = None,
) -> None:
    """
    Simple polling loop.

    Sweeps immediately, then every interval_seconds. If `lock` is given, each
    sweep holds it so it never interleaves with store mutations made by other
    threads.

    To stop the loop, cancel the coroutine/task.
    """
    sleep_s = max(0.01, float(interval_seconds))

    while True:
        try:
            if lock is not None:
                with lock:
                    scheduler.sweep()
            else:
                scheduler.sweep()
        except Exception:
            logger.exception("Reminder sweep failed")

        await asyncio.sleep(sleep_s)


@dataclass(slots=True)
class ReminderRunner:
    """Handle for the background reminder thread; stop() halts the timer."""

    thread: threading.Thread
    loop: asyncio.AbstractEventLoop
    stop_event: asyncio.Event

    def stop(self) -> None:
        try:
            self.loop.call_soon_threadsafe(self.stop_event.set)
        except Exception:
            logger.debug("Failed to signal reminder stop.", exc_info=True)

    def join(self, timeout: float | None = None) -> None:
        self.thread.join(timeout=timeout)

    def is_alive(self) -> bool:
        return self.thread.is_alive()


async def _run_until_stopped(
        scheduler: NotificationScheduler,
        stop_event: asyncio.Event,
        interval_seconds: float,
        lock: threading.RLock | None,
) -> None:
    runner = asyncio.create_task(
        run_notification_scheduler(scheduler, interval_seconds=interval_seconds, lock=lock)
    )
    try:
        await stop_event.wait()
    finally:
        runner.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await runner
        logger.info("Reminder loop stopped.")


def start_reminders_in_background(
        scheduler: NotificationScheduler,
        *,
        interval_seconds: float = 60.0,
        lock: threading.RLock | None = None,
) -> ReminderRunner | None:
    """
    Run the reminder loop in a daemon thread with its own event loop
    (the console REPL blocks the main thread on input()).
    """
    ready = threading.Event()
    holder: dict[str, object] = {}

    def runner() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        stop_event = asyncio.Event()

        holder["loop"] = loop
        holder["stop_event"] = stop_event
        ready.set()

        try:
            loop.run_until_complete(_run_until_stopped(scheduler, stop_event, interval_seconds, lock))
        finally:
            with contextlib.suppress(Exception):
                loop.close()

    t = threading.Thread(target=runner, name="daystamp-reminders", daemon=True)
    t.start()

    ready.wait(timeout=5.0)
    loop = holder.get("loop")
    stop_event = holder.get("stop_event")

    if not isinstance(loop, asyncio.AbstractEventLoop) or not isinstance(stop_event, asyncio.Event):
        logger.error("Reminder thread did not initialize properly.")
        return None

    logger.info("Reminder thread started (interval=%ss).", interval_seconds)
    return ReminderRunner(thread=t, loop=loop, stop_event=stop_event)
