# src/daystamp/config.py

"""Runtime settings for daystamp.

Values come from the process environment, optionally seeded from a `.env`
file in the working directory. Every variable is prefixed with DAYSTAMP_
and has a default, so importing this module never fails.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DAYSTAMP"
DEFAULT_DATA_DIR = Path(".local/daystamp")

_TRUTHY = frozenset({"1", "true", "yes", "y", "on"})

load_dotenv(override=False)


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _raw(suffix: str) -> str | None:
    """Stripped value of DAYSTAMP_<suffix>, or None when unset/blank."""
    value = os.getenv(_k(suffix))
    if value is None or not value.strip():
        return None
    return value.strip()


def _flag(suffix: str, default: bool) -> bool:
    value = _raw(suffix)
    return default if value is None else value.lower() in _TRUTHY


def _positive_int(suffix: str, default: int) -> int:
    value = _raw(suffix)
    if value is None:
        return default
    try:
        return max(1, int(value))
    except ValueError:
        return default


def _path(suffix: str, default: Path) -> Path:
    value = _raw(suffix)
    return default if value is None else Path(value).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    app_name: str
    log_level: str

    # Console REPL; when off the process only runs reminders.
    console_enabled: bool
    notifications_enabled: bool

    notify_interval_seconds: int
    notify_lookahead_minutes: int

    data_dir: Path
    db_path: Path

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _path("DATA_DIR", DEFAULT_DATA_DIR)
        return Settings(
            app_name=_raw("APP_NAME") or "daystamp",
            log_level=(_raw("LOG_LEVEL") or "INFO").upper(),
            console_enabled=_flag("CONSOLE_ENABLED", True),
            notifications_enabled=_flag("NOTIFICATIONS_ENABLED", True),
            notify_interval_seconds=_positive_int("NOTIFY_INTERVAL_SECONDS", 60),
            notify_lookahead_minutes=_positive_int("NOTIFY_LOOKAHEAD_MINUTES", 30),
            data_dir=data_dir,
            db_path=_path("DB_PATH", data_dir / "daystamp.sqlite3"),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
