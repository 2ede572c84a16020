# src/daystamp/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import re
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import cast

from ..core.errors import NotFoundError, ValidationError
from ..core.state import AppState
from ..tasks.aggregate import day_progress, month_calendar, tasks_for_day, week_schedule
from ..tasks.recurrence import next_due_date
from ..tasks.task_models import (
    DEFAULT_TIME,
    Task,
    TaskDraft,
    TaskTag,
    format_date,
    validate_date,
    validate_year_month,
    year_month_of,
)

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

_WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

# Anything shaped like a month key is validated, never taken as goal text.
_MONTH_KEY_LIKE = re.compile(r"^\d{4}-\d{1,2}$")


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except ValidationError as e:
            return f"Invalid input: {e}"
        except NotFoundError as e:
            return f"Not found: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _today() -> date:
    return datetime.now().date()


def _parse_day(raw: str | None) -> str:
    """YYYY-MM-DD, or one of today/tomorrow/yesterday."""
    if not raw:
        return format_date(_today())
    word = raw.lower()
    if word == "today":
        return format_date(_today())
    if word == "tomorrow":
        return format_date(_today() + timedelta(days=1))
    if word == "yesterday":
        return format_date(_today() - timedelta(days=1))
    return validate_date(raw)


def _short_id(task: Task) -> str:
    return task.id[:8]


def format_task(task: Task, *, with_date: bool = False) -> str:
    mark = "x" if task.is_completed else " "
    when = f"{task.due_date} {task.time}" if with_date else task.time
    flags = task.tag.label + (", daily" if task.is_recurring else "")
    line = f"[{mark}] {when} {task.title} ({flags}) #{_short_id(task)}"
    if task.description:
        line += f"\n      {task.description}"
    return line


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    tasks = state.store.tasks
    open_count = sum(1 for t in tasks if not t.is_completed)
    try:
        permitted = bool(state.notifier.is_permitted())
    except Exception:
        permitted = False
    db_path = getattr(state.settings, "db_path", "?")
    return (
        "Status:\n"
        f"  Tasks: {len(tasks)} ({open_count} open)\n"
        f"  Reminders: {'ON' if permitted else 'OFF'} (already sent: {len(state.scheduler.notified)})\n"
        f"  Storage: {db_path}"
    )


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add DATE TIME TITLE [| DESCRIPTION] [tag:work] [+daily]

    DATE: YYYY-MM-DD or today/tomorrow. TIME: HH:MM (or "-" for 09:00).
    """
    if len(args) < 3:
        return "Usage: /add DATE TIME TITLE [| DESCRIPTION] [tag:work|personal|school|other] [+daily]"

    due_date = _parse_day(args[0])
    hhmm = DEFAULT_TIME if args[1] == "-" else args[1]

    tag: TaskTag | str = TaskTag.OTHER
    recurring = False
    words: list[str] = []
    for tok in args[2:]:
        low = tok.lower()
        if low.startswith("tag:"):
            tag = tok[4:]
        elif low in ("+daily", "+recurring"):
            recurring = True
        else:
            words.append(tok)

    title, _, description = " ".join(words).partition("|")
    task = state.store.add(
        TaskDraft(
            title=title,
            description=description,
            due_date=due_date,
            time=hhmm,
            is_recurring=recurring,
            tag=tag,
        )
    )
    if emit is not None and task.due_at <= datetime.now():
        with contextlib.suppress(Exception):
            emit("Note: this task is already past due; no reminder will be sent for it.")
    return f"Added: {format_task(task, with_date=True)}"


def cmd_done(state: AppState, args: list[str]) -> str:
    """/done ID - toggle completion (ID may be a unique prefix)."""
    if not args:
        return "Usage: /done ID"
    task = state.store.find_by_prefix(args[0])
    updated = state.store.toggle(task.id)
    if updated is None:
        return f"Not found: {args[0]}"
    if not updated.is_completed:
        return f"Reopened: {updated.title}"
    msg = f"Completed: {updated.title}"
    if updated.is_recurring:
        msg += f"\nNext occurrence scheduled for {next_due_date(updated.due_date)} {updated.time}."
    progress = day_progress(state.store.tasks, updated.due_date)
    if progress.all_done:
        msg += f"\nAll tasks for {updated.due_date} are done. Day stamped!"
    return msg


def cmd_delete(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /del ID"
    task = state.store.find_by_prefix(args[0])
    state.store.delete(task.id)
    return f"Deleted: {task.title}"


def cmd_day(state: AppState, args: list[str]) -> str:
    day = _parse_day(args[0] if args else None)
    tasks = tasks_for_day(state.store.tasks, day)
    header = f"{day} ({_WEEKDAYS[date.fromisoformat(day).weekday()]})"
    if not tasks:
        return f"{header}\n  No tasks for this day."
    progress = day_progress(tasks, day)
    lines = [f"{header}  {progress.completed}/{progress.total}"]
    lines.extend(f"  {format_task(t)}" for t in tasks)
    return "\n".join(lines)


def cmd_week(state: AppState, args: list[str]) -> str:
    start = _parse_day(args[0] if args else None)
    lines: list[str] = []
    for day, tasks in week_schedule(state.store.tasks, start):
        wd = _WEEKDAYS[date.fromisoformat(day).weekday()]
        if not tasks:
            lines.append(f"{day} {wd}: -")
            continue
        lines.append(f"{day} {wd}:")
        lines.extend(f"  {format_task(t)}" for t in tasks)
    return "\n".join(lines)


def cmd_month(state: AppState, args: list[str]) -> str:
    """/month [YYYY-MM] - month overview with stamps (*) and the monthly goal."""
    ym = validate_year_month(args[0]) if args else year_month_of(_today())
    year, month = (int(p) for p in ym.split("-"))

    goal = state.store.monthly_goal(ym)
    lines = [f"{ym}  goal: {goal or '(not set)'}"]
    for cell in month_calendar(state.store.tasks, year, month):
        if not cell.preview and not cell.stamped:
            continue
        stamp = "*" if cell.stamped else " "
        titles = ", ".join(t.title for t in cell.preview)
        if cell.overflow:
            titles += f" ...and {cell.overflow} more"
        lines.append(f" {stamp} {cell.day:02d} {_WEEKDAYS[cell.weekday]}  {titles}")
    if len(lines) == 1:
        lines.append("  No tasks this month.")
    return "\n".join(lines)


def cmd_goal(state: AppState, args: list[str]) -> str:
    """
    /goal                -> show this month's goal
    /goal TEXT           -> set this month's goal
    /goal YYYY-MM [TEXT] -> show/set another month's goal
    /goal [YYYY-MM] -    -> clear the goal (the month key is kept with an empty text)
    """
    ym = year_month_of(_today())
    if args and _MONTH_KEY_LIKE.match(args[0]):
        ym = validate_year_month(args[0])
        args = args[1:]

    if not args:
        return f"Goal for {ym}: {state.store.monthly_goal(ym) or '(not set)'}"

    text = " ".join(args).strip()
    if text == "-":
        text = ""
    state.store.set_monthly_goal(ym, text)
    return f"Goal for {ym} set: {text}" if text else f"Goal for {ym} cleared."


def cmd_notify(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /notify      -> show status
    /notify on   -> enable reminders
    /notify off  -> disable reminders
    """
    set_enabled = getattr(state.notifier, "set_enabled", None)
    if not args:
        on = bool(state.notifier.is_permitted())
        return f"Reminders are currently {'ON' if on else 'OFF'}. Use /notify on or /notify off."
    if set_enabled is None:
        return "This notifier cannot be switched at runtime."

    arg = args[0].lower()
    if arg in ("on", "1", "true", "yes"):
        set_enabled(True)
        logger.debug("Reminders enabled from console")
        if emit:
            with contextlib.suppress(Exception):
                emit("[REMINDER] Tasks due within the next window will be announced once.")
        return "Reminders enabled."
    if arg in ("off", "0", "false", "no"):
        set_enabled(False)
        logger.debug("Reminders disabled from console")
        return "Reminders disabled."
    return "Usage: /notify on or /notify off."


def cmd_progress(state: AppState, args: list[str]) -> str:
    day = _parse_day(args[0] if args else None)
    p = day_progress(state.store.tasks, day)
    msg = f"Progress {day}: {p.completed} / {p.total} ({p.percentage:.0f}%)"
    if p.all_done:
        msg += "\nGreat! Every task for this day is complete!"
    return msg


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show task counts, reminders and storage.")
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add DATE TIME TITLE [| DESCRIPTION] [tag:work] [+daily].",
)
registry.register("done", cmd_done, help_text="Toggle completion: /done ID.", aliases=["toggle"])
registry.register("del", cmd_delete, help_text="Delete a task: /del ID.", aliases=["delete", "rm"])
registry.register("day", cmd_day, help_text="Day schedule: /day [DATE].", aliases=["today"])
registry.register("week", cmd_week, help_text="Seven-day schedule: /week [DATE].")
registry.register("month", cmd_month, help_text="Month overview with stamps: /month [YYYY-MM].")
registry.register("goal", cmd_goal, help_text="Monthly goal: /goal [YYYY-MM] [TEXT].")
registry.register("progress", cmd_progress, help_text="Completion for a day: /progress [DATE].")
registry.register("notify", cmd_notify, help_text="Enable/disable reminders: /notify on | /notify off.")
