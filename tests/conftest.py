# tests/conftest.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from taskhub.domain.common.models import AuthContext
from taskhub.domain.common.ports import Clock, IdGenerator
from taskhub.domain.common.retry import RetryPolicy
from taskhub.domain.common.time import to_iso
from taskhub.domain.tasks.query import TaskQueryService
from taskhub.domain.tasks.service import TaskService
from taskhub.domain.users.models import RegisterUserRequest
from taskhub.domain.users.ports import SecretHasher
from taskhub.domain.users.service import UserService
from taskhub.infra.db.connection import Database
from taskhub.infra.db.schema_version import apply_migrations
from taskhub.infra.db.unit_of_work import sqlite_uow_factory
from taskhub.infra.scheduler.reaper import ReaperConfig, StaleTaskReaper

START = datetime(2030, 1, 15, 9, 0, tzinfo=timezone.utc)


class FakeClock(Clock):
    """Manually driven clock; starts at START."""

    def __init__(self, now: datetime = START) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now


class SequentialIds(IdGenerator):
    def __init__(self, prefix: str = "id") -> None:
        self._prefix = prefix
        self._n = 0

    def new_id(self) -> str:
        self._n += 1
        return f"{self._prefix}-{self._n}"


class PlainHasher(SecretHasher):
    """Reversible stand-in for bcrypt; fast and deterministic."""

    def hash(self, secret: str) -> str:
        return "plain$" + secret[::-1]

    def verify(self, secret: str, hashed: str) -> bool:
        return hashed == self.hash(secret)


@dataclass
class Env:
    db: Database
    clock: FakeClock
    tasks: TaskService
    queries: TaskQueryService
    users: UserService
    reaper: StaleTaskReaper

    async def setup(self) -> None:
        await apply_migrations(self.db, to_iso(self.clock.now()))

    async def add_user(self, username: str, role: str = "user") -> AuthContext:
        user = await self.users.register(
            RegisterUserRequest(
                username=username,
                email=f"{username}@example.com",
                password="Passw0rd",
                role=role,
            )
        )
        return AuthContext(user_id=user.user_id, role=user.role)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "taskhub.db"


@pytest.fixture()
def env(db_path: Path) -> Env:
    """
    Services wired against a fresh SQLite file, a fake clock and no retry pauses.

    Tests call ``await env.setup()`` inside their event loop before use.
    """
    db = Database(str(db_path), timeout=5.0)
    clock = FakeClock()
    uow = sqlite_uow_factory(db)
    retry = RetryPolicy(max_attempts=3, interval_seconds=0)
    return Env(
        db=db,
        clock=clock,
        tasks=TaskService(uow, clock, SequentialIds("task"), timezone.utc, retry),
        queries=TaskQueryService(uow, clock, timezone.utc, retry),
        users=UserService(uow, clock, SequentialIds("user"), PlainHasher(), retry),
        reaper=StaleTaskReaper(
            uow,
            clock,
            probe=db.ping,
            cfg=ReaperConfig(interval_seconds=3600, probe_interval_seconds=0.01),
            retry=retry,
        ),
    )
