# src/daystamp/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_scheduler import NotificationScheduler, ReminderRunner
from ..tasks.task_store import TaskStore
from .ports import KeyValueStorage, Notifier


@dataclass
class AppState:
    # Settings object (daystamp.config.Settings or a test stand-in).
    settings: Any

    storage: KeyValueStorage
    store: TaskStore
    notifier: Notifier
    scheduler: NotificationScheduler

    # Held around every store access: console thread and reminder thread share it.
    lock: threading.RLock = field(default_factory=threading.RLock)
    reminders: ReminderRunner | None = None
