from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Optional, Sequence

from taskhub.domain.tasks.models import Comment, Task, TaskCriteria, TaskSort
from taskhub.domain.users.ports import UserRepository


class TaskRepository(ABC):
    @abstractmethod
    async def get(self, task_id: str) -> Optional[Task]: ...

    @abstractmethod
    async def find_for(self, task_id: str, user_id: str, include_collaborators: bool) -> Optional[Task]:
        """Task by id, only if ``user_id`` owns it (or collaborates, when allowed)."""

    @abstractmethod
    async def find_by_title_and_owner(self, title: str, owner_id: str) -> Optional[Task]: ...

    @abstractmethod
    async def insert(self, task: Task) -> None: ...

    @abstractmethod
    async def save(self, task: Task) -> None: ...

    @abstractmethod
    async def delete_for_owner(self, task_id: str, owner_id: str) -> bool: ...

    @abstractmethod
    async def append_comment(self, task_id: str, comment: Comment, now: datetime) -> None: ...

    @abstractmethod
    async def search(self, criteria: TaskCriteria, sort: TaskSort, skip: int, limit: int) -> Sequence[Task]: ...

    @abstractmethod
    async def count(self, criteria: TaskCriteria) -> int: ...

    @abstractmethod
    async def list_stale_in_progress(self, started_before: datetime) -> Sequence[str]: ...


class UnitOfWork(ABC):
    """
    One atomic unit against the store.

    ``async with uow:`` commits on a clean exit and rolls back otherwise.
    """

    tasks: TaskRepository
    users: UserRepository

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork": ...

    @abstractmethod
    async def __aexit__(self, exc_type, exc, tb) -> None: ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
