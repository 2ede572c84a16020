# src/daystamp/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers that share the terminal with the REPL prompt; only WARNING+ reaches
# the console from them (reminders themselves are printed by the notifier).
QUIET_ON_CONSOLE = ("daystamp.tasks.task_scheduler",)


class _ConsoleNoiseFilter(logging.Filter):
    """Lets daystamp records through; everything else must be ERROR+."""

    def __init__(self, quiet: tuple[str, ...] = QUIET_ON_CONSOLE) -> None:
        super().__init__()
        self._quiet = quiet

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("daystamp."):
            # third-party libraries and captured py.warnings
            return record.levelno >= logging.ERROR
        if name.startswith(self._quiet):
            return record.levelno >= logging.WARNING
        return True


def setup_logging(
    *,
    log_dir: str | Path = ".local/daystamp",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install a filtered stderr handler and a full-detail file handler on the
    root logger, replacing whatever handlers were there.

    Returns the log file path. Call once at startup.
    """
    log_path = Path(log_dir) / "daystamp.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.addFilter(_ConsoleNoiseFilter())

    to_file = logging.FileHandler(log_path, encoding="utf-8")
    to_file.setLevel(file_level)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in (console, to_file):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.captureWarnings(True)
    return log_path
