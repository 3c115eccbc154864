from __future__ import annotations

from typing import Optional

from taskhub.domain.tasks.ports import UnitOfWork
from taskhub.infra.db.connection import Database, Session
from taskhub.infra.db.repo.tasks_sqlite import TaskSqliteRepo
from taskhub.infra.db.repo.users_sqlite import UserSqliteRepo


class SqliteUnitOfWork(UnitOfWork):
    """BEGIN IMMEDIATE on enter; COMMIT on clean exit, ROLLBACK otherwise."""

    def __init__(self, db: Database) -> None:
        self._db = db
        self._session: Optional[Session] = None

    async def __aenter__(self) -> "SqliteUnitOfWork":
        self._session = await self._db.begin()
        self.tasks = TaskSqliteRepo(self._session)
        self.users = UserSqliteRepo(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        session = self._session
        self._session = None
        if session is None:
            return
        try:
            if exc_type is None:
                await session.commit()
            else:
                await session.rollback()
        finally:
            await session.close()


def sqlite_uow_factory(db: Database):
    def factory() -> SqliteUnitOfWork:
        return SqliteUnitOfWork(db)

    return factory
