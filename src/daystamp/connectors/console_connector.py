# src/daystamp/connectors/console_connector.py

from __future__ import annotations

import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.aggregate import day_progress
from ..tasks.task_models import format_date

logger = logging.getLogger(__name__)

PROMPT = "daystamp> "
EXIT_WORDS = frozenset({"/exit", "/quit", "/q"})


def _say(text: str) -> None:
    stamp = datetime.now().strftime("%H:%M")
    print(f"[{stamp}] {text}", flush=True)


def _greeting(state: AppState) -> str:
    today = format_date(datetime.now().date())
    with state.lock:
        progress = day_progress(state.store.tasks, today)
    if progress.total == 0:
        summary = "nothing scheduled for today"
    else:
        summary = f"{progress.completed}/{progress.total} done today"
    return f"daystamp: {summary}. Type /help for commands, /exit to quit."


def run_console_loop(state: AppState) -> None:
    """
    Blocking REPL over the slash-command registry.

    Every command runs under state.lock so it never interleaves with a
    reminder sweep from the background thread.
    """
    logger.info("Console started.")
    _say(_greeting(state))

    while True:
        try:
            line = input(PROMPT).strip()
        except (EOFError, KeyboardInterrupt):
            print()
            logger.info("Console input closed.")
            break

        if not line:
            continue
        if line.lower() in EXIT_WORDS:
            break

        try:
            with state.lock:
                reply = command_registry.handle(state, line, emit=_say)
        except Exception:
            logger.exception("Command failed: %r", line)
            reply = "Something went wrong while running that command (see the log file)."

        print(reply if reply is not None else "Commands start with '/'. Try /help.")

    logger.info("Console finished.")
