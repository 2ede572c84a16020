# tests/test_recurrence.py

from __future__ import annotations

import pytest

from daystamp.tasks.recurrence import next_due_date, next_occurrence
from daystamp.tasks.task_models import Task, TaskTag


@pytest.mark.parametrize(
    "due,expected",
    [
        ("2024-01-31", "2024-02-01"),
        ("2024-02-28", "2024-02-29"),
        ("2024-02-29", "2024-03-01"),
        ("2023-02-28", "2023-03-01"),
        ("2024-12-31", "2025-01-01"),
        ("2024-04-30", "2024-05-01"),
    ],
)
def test_next_due_date_rolls_over_boundaries(due: str, expected: str) -> None:
    assert next_due_date(due) == expected


def test_next_occurrence_copies_fields_with_fresh_id() -> None:
    done = Task(
        id="orig",
        title="Morning review",
        description="inbox zero",
        due_date="2024-01-31",
        time="08:00",
        is_completed=True,
        is_recurring=True,
        tag=TaskTag.WORK,
    )

    nxt = next_occurrence(done)

    assert nxt.id != done.id
    assert nxt.due_date == "2024-02-01"
    assert nxt.time == "08:00"
    assert nxt.is_completed is False
    assert (nxt.title, nxt.description, nxt.tag, nxt.is_recurring) == (
        "Morning review",
        "inbox zero",
        TaskTag.WORK,
        True,
    )
    # The original is not modified.
    assert done.is_completed is True
    assert done.due_date == "2024-01-31"
