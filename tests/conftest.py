# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from daystamp.cli.bootstrap import create_initial_state
from daystamp.core.state import AppState
from daystamp.tasks.task_store import TaskStore

from .fakes import FakeNotifier, InMemoryStorage


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """Settings stand-in rooted at tmp_path, independent of DAYSTAMP_* env vars."""
    return SimpleNamespace(
        app_name="daystamp-test",
        log_level="DEBUG",
        console_enabled=False,
        notifications_enabled=True,
        notify_interval_seconds=60,
        notify_lookahead_minutes=30,
        data_dir=tmp_path,
        db_path=tmp_path / "daystamp.sqlite3",
    )


@pytest.fixture()
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def store(storage: InMemoryStorage) -> TaskStore:
    s = TaskStore(storage)
    s.init()
    return s


@pytest.fixture()
def state(settings: SimpleNamespace, storage: InMemoryStorage, notifier: FakeNotifier) -> AppState:
    """AppState wired with in-memory storage and a recording notifier."""
    return create_initial_state(settings=settings, storage=storage, notifier=notifier)
