# src/daystamp/core/errors.py

from __future__ import annotations

"""
Error taxonomy.

None of these are fatal to the process:
- ValidationError: rejected input, operation aborted before any mutation
- NotFoundError: unknown task id where the caller asked for a specific one
- PersistenceError: storage read/write failed, in-memory state stays authoritative
- PermissionDenied: notifications are not allowed, reminders degrade to nothing
"""


class DaystampError(Exception):
    """Base class for all application errors."""


class ValidationError(DaystampError, ValueError):
    pass


class NotFoundError(DaystampError, LookupError):
    pass


class PersistenceError(DaystampError):
    pass


class PermissionDenied(DaystampError):
    pass
