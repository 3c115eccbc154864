from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Sequence

from taskhub.constants import SORT_FIELDS
from taskhub.domain.common.errors import BadRequestError, FieldErrors, NotFoundError
from taskhub.domain.common.models import AuthContext
from taskhub.domain.common.ports import Clock
from taskhub.domain.common.retry import RetryPolicy, run_operation
from taskhub.domain.common.time import parse_due_date
from taskhub.domain.tasks.models import (
    PageRequest,
    Task,
    TaskCriteria,
    TaskFilters,
    TaskPage,
    TaskSort,
)
from taskhub.domain.tasks.ports import UnitOfWorkFactory
from taskhub.domain.tasks.rules import clean_priority, clean_status

logger = logging.getLogger(__name__)

TASK_NOT_FOUND = "Task not found or not authorized"
USER_NOT_FOUND = "User not found"


def build_criteria(requester_id: str, filters: TaskFilters, tz: tzinfo) -> TaskCriteria:
    errors = FieldErrors()
    status = clean_status(filters.status, errors)
    priority = clean_priority(filters.priority, errors)
    errors.raise_if_any()

    search = (filters.search or "").strip() or None
    tags = tuple(t.strip() for t in filters.tags if t and t.strip())
    return TaskCriteria(
        requester_id=requester_id,
        include_collaborations=filters.include_collaborations,
        status=status,
        priority=priority,
        tags=tags,
        category=filters.category or None,
        search=search,
        due_from=parse_due_date(filters.due_date_from, tz),
        due_to=parse_due_date(filters.due_date_to, tz),
    )


def build_sort(filters: TaskFilters) -> TaskSort:
    if filters.sort_by not in SORT_FIELDS:
        raise BadRequestError.from_fields({"sortBy": f"must be one of {', '.join(SORT_FIELDS)}"})
    if filters.sort_order not in ("asc", "desc"):
        raise BadRequestError.from_fields({"sortOrder": "must be asc or desc"})
    return TaskSort(sort_by=filters.sort_by, descending=filters.sort_order == "desc")


class TaskQueryService:
    """Read side: visibility-scoped, filtered, sorted and paginated task views."""

    def __init__(self, uow: UnitOfWorkFactory, clock: Clock, tz: tzinfo, retry: RetryPolicy = RetryPolicy()) -> None:
        self._uow = uow
        self._clock = clock
        self._tz = tz
        self._retry = retry

    async def list_tasks(
        self,
        auth: AuthContext,
        filters: TaskFilters = TaskFilters(),
        page: PageRequest = PageRequest(),
    ) -> TaskPage:
        if page.page < 1 or page.limit < 1:
            raise BadRequestError.from_fields({"page": "page and limit must be positive"})
        criteria = build_criteria(auth.user_id, filters, self._tz)
        sort = build_sort(filters)

        async def op() -> TaskPage:
            async with self._uow() as uow:
                if await uow.users.get(auth.user_id) is None:
                    raise NotFoundError(USER_NOT_FOUND)
                items = await uow.tasks.search(criteria, sort, page.skip, page.limit)
                total = await uow.tasks.count(criteria)
            return TaskPage(items=tuple(items), total_count=total, page=page.page, limit=page.limit)

        return await run_operation("list_tasks", op, self._retry)

    async def get_task(self, auth: AuthContext, task_id: str) -> Task:
        async def op() -> Task:
            async with self._uow() as uow:
                task = await uow.tasks.find_for(task_id, auth.user_id, include_collaborators=True)
            if task is None:
                raise NotFoundError(TASK_NOT_FOUND)
            return task

        return await run_operation("get_task", op, self._retry)

    async def list_overdue(self, auth: AuthContext, include_collaborations: bool = True) -> Sequence[Task]:
        """Visible tasks past their due date and not done, earliest due first."""
        now = self._clock.now()
        criteria = TaskCriteria(
            requester_id=auth.user_id,
            include_collaborations=include_collaborations,
            overdue_at=now,
        )
        sort = TaskSort(sort_by="dueDate", descending=False)

        async def op() -> Sequence[Task]:
            async with self._uow() as uow:
                if await uow.users.get(auth.user_id) is None:
                    raise NotFoundError(USER_NOT_FOUND)
                total = await uow.tasks.count(criteria)
                return await uow.tasks.search(criteria, sort, 0, total or 1)

        return await run_operation("list_overdue", op, self._retry)
