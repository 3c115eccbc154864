"""
Unit tests for error payloads, store error translation and the retry policy.

Run with: python -m pytest tests/test_errors_and_retry.py -v
"""
from __future__ import annotations

import asyncio
import sqlite3

import pytest

from taskhub.domain.common.errors import (
    BadRequestError,
    ConflictError,
    FatalError,
    FieldErrors,
    NotFoundError,
    TransientError,
    error_payload,
)
from taskhub.domain.common.retry import RetryPolicy, run_operation, with_retry
from taskhub.infra.db.errors import translate_error

FAST = RetryPolicy(max_attempts=3, interval_seconds=0)


# ----- error_payload -----


def test_payload_for_bad_request_carries_fields_and_ids():
    err = BadRequestError("One or more collaborators don't exist: u9", fields={"collaborators": "x"}, ids=["u9"])
    p = error_payload(err)
    assert p["status"] == 400
    assert p["type"] == "BadRequest"
    assert p["fields"] == {"collaborators": "x"}
    assert p["ids"] == ["u9"]


def test_payload_for_fatal_is_opaque_in_production():
    p = error_payload(FatalError("sqlite exploded at line 3"), expose_details=False)
    assert p == {"message": "Server Error", "type": "Fatal", "status": 500}


def test_payload_for_fatal_exposes_detail_outside_production():
    p = error_payload(FatalError("sqlite exploded"), expose_details=True)
    assert p["message"] == "Server Error"
    assert p["detail"] == "sqlite exploded"


def test_payload_for_unclassified_error_is_opaque():
    p = error_payload(KeyError("secret"))
    assert p["status"] == 500
    assert "secret" not in str(p)


def test_not_found_message_passes_through():
    p = error_payload(NotFoundError("Task not found or not authorized"))
    assert p["status"] == 404
    assert p["message"] == "Task not found or not authorized"


def test_field_errors_collects_first_message_per_field():
    errors = FieldErrors()
    errors.add("title", "Title is required")
    errors.add("title", "Title too long")
    errors.add("priority", "bad")
    with pytest.raises(BadRequestError) as exc:
        errors.raise_if_any()
    assert exc.value.fields == {"title": "Title is required", "priority": "bad"}
    assert exc.value.message.startswith("Validation failed: ")


def test_field_errors_empty_does_not_raise():
    FieldErrors().raise_if_any()


# ----- translate_error -----


def test_timeout_is_transient():
    assert isinstance(translate_error(asyncio.TimeoutError()), TransientError)


def test_operational_error_without_code_is_fatal():
    assert isinstance(translate_error(sqlite3.OperationalError("no such table: x")), FatalError)


def test_busy_database_is_transient():
    err = sqlite3.OperationalError("database is locked")
    err.sqlite_errorname = "SQLITE_BUSY"
    assert isinstance(translate_error(err), TransientError)


def test_unique_violation_is_conflict():
    err = sqlite3.IntegrityError("UNIQUE constraint failed: users.email")
    err.sqlite_errorname = "SQLITE_CONSTRAINT_UNIQUE"
    out = translate_error(err)
    assert isinstance(out, ConflictError)
    assert out.message == "User with this email already exists"


def test_check_violation_is_bad_request():
    err = sqlite3.IntegrityError("CHECK constraint failed: length(title) BETWEEN 3 AND 100")
    err.sqlite_errorname = "SQLITE_CONSTRAINT_CHECK"
    assert isinstance(translate_error(err), BadRequestError)


def test_domain_errors_pass_through():
    err = NotFoundError("x")
    assert translate_error(err) is err


# ----- with_retry / run_operation -----


def test_transient_failures_are_retried_then_succeed():
    async def run():
        calls = []

        async def op():
            calls.append(1)
            if len(calls) < 3:
                raise TransientError("busy")
            return "ok"

        assert await with_retry(op, FAST) == "ok"
        assert len(calls) == 3

    asyncio.run(run())


def test_transient_failure_gives_up_after_max_attempts():
    async def run():
        calls = []

        async def op():
            calls.append(1)
            raise TransientError("busy")

        with pytest.raises(TransientError):
            await with_retry(op, FAST)
        assert len(calls) == 3

    asyncio.run(run())


def test_domain_errors_are_not_retried():
    async def run():
        calls = []

        async def op():
            calls.append(1)
            raise ConflictError("dup")

        with pytest.raises(ConflictError):
            await run_operation("op", op, FAST)
        assert len(calls) == 1

    asyncio.run(run())


def test_unexpected_errors_become_fatal():
    async def run():
        async def op():
            raise KeyError("boom")

        with pytest.raises(FatalError) as exc:
            await run_operation("op", op, FAST)
        assert exc.value.public_message == "Server Error"

    asyncio.run(run())
