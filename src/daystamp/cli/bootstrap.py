# src/daystamp/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires storage, task store, notifier and reminder scheduler into AppState,
- tears everything down in the reverse order.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..config import get_settings
from ..connectors.console_notifier import ConsoleNotifier
from ..core.ports import KeyValueStorage, Notifier
from ..core.state import AppState
from ..storage.kv_store import SQLiteKeyValueStore
from ..tasks.task_scheduler import NotificationScheduler, start_reminders_in_background
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(
    *,
    settings=None,
    storage: KeyValueStorage | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Storage and notifier are injectable for tests; by default the SQLite
    store at settings.db_path and a console notifier are used.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if storage is None:
        _ensure_local_dirs(settings)
        storage = SQLiteKeyValueStore(settings.db_path)
    if notifier is None:
        notifier = ConsoleNotifier(enabled=bool(getattr(settings, "notifications_enabled", True)))

    store = TaskStore(storage)
    store.init()

    lookahead = timedelta(minutes=int(getattr(settings, "notify_lookahead_minutes", 30)))
    scheduler = NotificationScheduler(store, notifier, storage, lookahead=lookahead)
    scheduler.init()

    return AppState(
        settings=settings,
        storage=storage,
        store=store,
        notifier=notifier,
        scheduler=scheduler,
    )


def start_reminders(state: AppState) -> None:
    interval = float(getattr(state.settings, "notify_interval_seconds", 60))
    state.reminders = start_reminders_in_background(
        state.scheduler,
        interval_seconds=interval,
        lock=state.lock,
    )


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    if state.reminders is not None:
        state.reminders.stop()
        state.reminders.join(timeout=10.0)
        state.reminders = None

    with state.lock:
        try:
            state.scheduler.dispose()
        except Exception:
            logger.exception("Failed to dispose reminder scheduler.")
        try:
            state.store.dispose()
        except Exception:
            logger.exception("Failed to dispose task store.")

    try:
        close = getattr(state.storage, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Storage close failed.", exc_info=True)
