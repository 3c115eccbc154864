# -*- coding: utf-8 -*-
"""SQLite repositories. Bound to one Session; created by SqliteUnitOfWork."""

from taskhub.infra.db.repo.tasks_sqlite import TaskSqliteRepo
from taskhub.infra.db.repo.users_sqlite import UserSqliteRepo

__all__ = [
    "TaskSqliteRepo",
    "UserSqliteRepo",
]
