"""daystamp: a personal task calendar with day stamps and due-soon reminders."""

__version__ = "0.1.0"
