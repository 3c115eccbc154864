from __future__ import annotations

import math
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Sequence, Tuple, Union

from taskhub.constants import DEFAULT_PAGE_SIZE, DEFAULT_SORT_FIELD, MAX_PAGE_SIZE

TaskStatus = Literal["pending", "in-progress", "done"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
SortOrder = Literal["asc", "desc"]


class _Unset:
    """Marker for a field left out of a partial update."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class Comment:
    author_id: str
    text: str
    created_at: datetime


@dataclass(frozen=True)
class Task:
    task_id: str
    owner_id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    category: str
    tags: Tuple[str, ...]
    collaborators: Tuple[str, ...]
    due_date: Optional[datetime]
    estimated_time: Optional[int]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    comments: Tuple[Comment, ...]
    created_at: datetime
    updated_at: datetime

    def is_visible_to(self, user_id: str) -> bool:
        return user_id == self.owner_id or user_id in self.collaborators


@dataclass(frozen=True)
class NewTask:
    title: str
    description: str
    priority: Optional[TaskPriority] = None
    due_date: Union[str, datetime, None] = None
    estimated_time: Optional[int] = None
    tags: Sequence[str] = ()
    category: Optional[str] = None
    collaborators: Sequence[str] = ()


@dataclass(frozen=True)
class TaskChanges:
    """Partial update of task details. Fields left as UNSET are not touched."""

    title: Any = UNSET
    description: Any = UNSET
    priority: Any = UNSET
    due_date: Any = UNSET
    estimated_time: Any = UNSET
    tags: Any = UNSET
    category: Any = UNSET
    collaborators: Any = UNSET

    def supplied(self) -> Dict[str, Any]:
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {name: value for name, value in values.items() if value is not UNSET}


@dataclass(frozen=True)
class TaskFilters:
    include_collaborations: bool = False
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    tags: Sequence[str] = ()
    category: Optional[str] = None
    search: Optional[str] = None
    due_date_from: Union[str, datetime, None] = None
    due_date_to: Union[str, datetime, None] = None
    sort_by: str = DEFAULT_SORT_FIELD
    sort_order: SortOrder = "desc"


@dataclass(frozen=True)
class TaskCriteria:
    """Storage-facing form of TaskFilters: requester bound, dates normalized."""

    requester_id: str
    include_collaborations: bool = False
    status: Optional[str] = None
    priority: Optional[str] = None
    tags: Tuple[str, ...] = ()
    category: Optional[str] = None
    search: Optional[str] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    overdue_at: Optional[datetime] = None


@dataclass(frozen=True)
class TaskSort:
    sort_by: str = DEFAULT_SORT_FIELD
    descending: bool = True


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def clamped(cls, page: Optional[int], limit: Optional[int], max_limit: int = MAX_PAGE_SIZE) -> "PageRequest":
        page = max(1, page or 1)
        limit = max(1, limit or DEFAULT_PAGE_SIZE)
        return cls(page=page, limit=min(limit, max_limit))


@dataclass(frozen=True)
class TaskPage:
    items: Tuple[Task, ...]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_next_page(self) -> bool:
        return self.page * self.limit < self.total_count

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


@dataclass(frozen=True)
class SweepReport:
    found: int = 0
    closed: int = 0
    failed: int = 0
    skipped: bool = False
    failed_ids: Tuple[str, ...] = ()
