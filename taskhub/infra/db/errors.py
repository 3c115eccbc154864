"""Translate sqlite/aiosqlite failures into domain error kinds."""
from __future__ import annotations

import asyncio
import sqlite3

from taskhub.domain.common.errors import (
    BadRequestError,
    ConflictError,
    DomainError,
    FatalError,
    TransientError,
)

# sqlite extended result codes (sqlite3.Error.sqlite_errorname)
_TRANSIENT_CODES = ("SQLITE_BUSY", "SQLITE_LOCKED", "SQLITE_CANTOPEN", "SQLITE_IOERR", "SQLITE_PROTOCOL")

# UNIQUE constraint target -> message shown to the caller
_UNIQUE_MESSAGES = {
    "users.username": "User with this username already exists",
    "users.email": "User with this email already exists",
    "tasks.owner_id, tasks.title_key": "Task with this title already exists for this user",
}


def _unique_target(exc: sqlite3.IntegrityError) -> str:
    # "UNIQUE constraint failed: users.email"
    _, _, target = str(exc).partition(":")
    return target.strip()


def translate_error(exc: BaseException) -> DomainError:
    if isinstance(exc, DomainError):
        return exc
    if isinstance(exc, asyncio.TimeoutError):
        return TransientError("Store operation timed out")

    code = getattr(exc, "sqlite_errorname", "") or ""
    if isinstance(exc, sqlite3.IntegrityError):
        if code == "SQLITE_CONSTRAINT_UNIQUE" or code == "SQLITE_CONSTRAINT_PRIMARYKEY":
            target = _unique_target(exc)
            return ConflictError(_UNIQUE_MESSAGES.get(target, "Duplicate key error. Record already exists."))
        if code == "SQLITE_CONSTRAINT_FOREIGNKEY":
            return BadRequestError("Validation failed: referenced record does not exist")
        return BadRequestError(f"Validation failed: {exc}")
    if isinstance(exc, sqlite3.Error):
        if code.startswith(_TRANSIENT_CODES):
            return TransientError(f"Store unavailable: {exc}")
        return FatalError(f"Database error: {exc}")
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return TransientError(f"Store unavailable: {exc}")
    return FatalError(str(exc) or exc.__class__.__name__)
