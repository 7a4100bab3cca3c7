"""Helpers for classifying database integrity errors."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

UNIQUE_VIOLATION_SQLSTATE = "23505"
SQLITE_UNIQUE_ERRORNAME = "SQLITE_CONSTRAINT_UNIQUE"


def is_unique_violation(error: IntegrityError) -> bool:
    """Return True when a username or email collided with an existing row.

    Postgres drivers expose the SQLSTATE; SQLite only reports it in the message.
    """
    original = getattr(error, "orig", None)
    sqlstate = getattr(original, "sqlstate", None) or getattr(original, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    if getattr(original, "sqlite_errorname", None) == SQLITE_UNIQUE_ERRORNAME:
        return True
    message = str(original or error).lower()
    return "unique constraint" in message or "duplicate key" in message


__all__ = ["is_unique_violation"]
