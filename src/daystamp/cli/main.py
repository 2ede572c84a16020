# src/daystamp/cli/main.py

"""
`daystamp` entrypoint.

The reminder loop runs in a background thread for the whole process
lifetime. The main thread either hosts the console REPL or, with
DAYSTAMP_CONSOLE_ENABLED=0, just waits for SIGINT/SIGTERM.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

from ..config import Settings, get_settings
from ..connectors.console_connector import run_console_loop
from ..core.errors import PersistenceError
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state, shutdown_state, start_reminders

logger = logging.getLogger(__name__)


def _configure_logging(settings: Settings) -> None:
    console_level = logging.getLevelName(settings.log_level)
    if not isinstance(console_level, int):
        console_level = logging.INFO
    log_path = setup_logging(log_dir=settings.data_dir, console_level=console_level)
    logger.debug("Logging to %s", log_path)


def _install_signal_handlers(stop: threading.Event, *, console: bool) -> None:
    """
    SIGTERM always ends the process through the normal shutdown path.

    In console mode the main thread sits in input(), so the handler raises
    KeyboardInterrupt to unwind the REPL; Ctrl+C keeps its default behaviour.
    Without a console both signals just release `stop`.
    """

    def _on_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop.set()
        if console:
            raise KeyboardInterrupt

    signals = [signal.SIGTERM]
    if not console:
        signals.append(signal.SIGINT)
    for sig in signals:
        # not every platform lets us install every handler
        with contextlib.suppress(ValueError, OSError):
            signal.signal(sig, _on_signal)


def main() -> None:
    settings = get_settings()
    _configure_logging(settings)
    logger.info("Starting %s (data: %s)", settings.app_name, settings.data_dir)

    try:
        state = create_initial_state(settings=settings)
    except PersistenceError:
        logger.exception("Cannot open %s; exiting.", settings.db_path)
        raise SystemExit(1) from None

    start_reminders(state)

    stop = threading.Event()
    try:
        _install_signal_handlers(stop, console=settings.console_enabled)
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled; only reminders are running. Press Ctrl+C to stop.")
            stop.wait()
    finally:
        shutdown_state(state)
        logger.info("Stopped.")


if __name__ == "__main__":
    main()
