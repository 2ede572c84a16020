# src/daystamp/connectors/console_notifier.py

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import TextIO

from ..core.errors import PermissionDenied

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleNotifier:
    """
    Notifier that prints reminders to the terminal.

    Permission is a plain switch (settings.notifications_enabled); when it is
    off, the scheduler silently skips firing.
    """

    def __init__(self, *, enabled: bool = True, stream: TextIO | None = None) -> None:
        self._enabled = bool(enabled)
        self._stream = stream
        self.fired_count = 0

    def request_permission(self) -> bool:
        if not self._enabled:
            logger.info("Console notifications disabled; reminders will not be shown.")
        return self._enabled

    def is_permitted(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def fire(self, title: str, body: str) -> None:
        if not self._enabled:
            raise PermissionDenied("console notifications are disabled")
        stream = self._stream or sys.stdout
        stream.write(f"\n[{_ts_local()}] [REMINDER] {title} - {body}\n")
        stream.flush()
        self.fired_count += 1
