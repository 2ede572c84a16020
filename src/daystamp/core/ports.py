# src/daystamp/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The task core depends on Protocols instead of concrete implementations.
This keeps storage/notification backends swappable and makes testing easier.
"""

from typing import Protocol


class KeyValueStorage(Protocol):
    """
    Blob store keyed by short names ("tasks", "monthlyGoals", "notifiedTaskIds").

    Implementations raise PersistenceError on any backend failure.
    """

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...


class Notifier(Protocol):
    """
    User-facing alert channel (desktop notification, console line, ...).

    If is_permitted() is False the scheduler skips firing without error.
    """

    def request_permission(self) -> bool: ...
    def is_permitted(self) -> bool: ...
    def fire(self, title: str, body: str) -> None: ...
