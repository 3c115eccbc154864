from __future__ import annotations

import logging
from dataclasses import replace
from datetime import tzinfo
from typing import Any, Dict, Sequence

from taskhub.constants import TASK_PRIORITY_MEDIUM, TASK_STATUS_PENDING
from taskhub.domain.common.errors import BadRequestError, ConflictError, FieldErrors, NotFoundError
from taskhub.domain.common.models import AuthContext
from taskhub.domain.common.ports import Clock, IdGenerator
from taskhub.domain.common.retry import RetryPolicy, run_operation
from taskhub.domain.common.time import parse_due_date
from taskhub.domain.tasks.models import Comment, NewTask, Task, TaskChanges
from taskhub.domain.tasks.ports import UnitOfWork, UnitOfWorkFactory
from taskhub.domain.tasks.query import TASK_NOT_FOUND, USER_NOT_FOUND
from taskhub.domain.tasks.rules import (
    check_due_date_in_future,
    clean_category,
    clean_collaborators,
    clean_comment,
    clean_description,
    clean_estimated_time,
    clean_priority,
    clean_status,
    clean_tags,
    clean_title,
)
from taskhub.domain.tasks.state import apply_status_transition

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "Task with this title already exists for this user"


class TaskService:
    """
    Task business logic. No sqlite here.

    Every operation runs as one unit of work: the existence checks,
    uniqueness checks and the write commit together or not at all.
    Transient store failures re-run the whole unit.
    """

    def __init__(
        self,
        uow: UnitOfWorkFactory,
        clock: Clock,
        ids: IdGenerator,
        tz: tzinfo,
        retry: RetryPolicy = RetryPolicy(),
    ) -> None:
        self._uow = uow
        self._clock = clock
        self._ids = ids
        self._tz = tz
        self._retry = retry

    async def create_task(self, auth: AuthContext, data: NewTask) -> Task:
        now = self._clock.now()

        errors = FieldErrors()
        title = clean_title(data.title, errors)
        description = clean_description(data.description, errors)
        priority = clean_priority(data.priority, errors) or TASK_PRIORITY_MEDIUM
        category = clean_category(data.category, errors)
        tags = clean_tags(data.tags, errors)
        collaborators = clean_collaborators(data.collaborators, errors)
        estimated_time = clean_estimated_time(data.estimated_time, errors)
        due_date = parse_due_date(data.due_date, self._tz)
        check_due_date_in_future(due_date, now, errors)
        errors.raise_if_any()

        async def op() -> Task:
            async with self._uow() as uow:
                if await uow.users.get(auth.user_id) is None:
                    raise NotFoundError(USER_NOT_FOUND)
                if await uow.tasks.find_by_title_and_owner(title, auth.user_id) is not None:
                    raise ConflictError(DUPLICATE_TITLE)
                await self._check_collaborators(uow, collaborators)

                task = Task(
                    task_id=self._ids.new_id(),
                    owner_id=auth.user_id,
                    title=title,
                    description=description,
                    status=TASK_STATUS_PENDING,
                    priority=priority,
                    category=category,
                    tags=tags,
                    collaborators=collaborators,
                    due_date=due_date,
                    estimated_time=estimated_time,
                    started_at=None,
                    completed_at=None,
                    comments=(),
                    created_at=now,
                    updated_at=now,
                )
                # the unique (owner, title) index is the final word under races
                await uow.tasks.insert(task)
            return task

        task = await run_operation("create_task", op, self._retry)
        logger.info(f"Task created: task_id={task.task_id}, owner_id={task.owner_id}")
        return task

    async def update_task_status(self, auth: AuthContext, task_id: str, status: str) -> Task:
        errors = FieldErrors()
        clean_status(status, errors)
        errors.raise_if_any()

        async def op() -> Task:
            async with self._uow() as uow:
                task = await uow.tasks.find_for(task_id, auth.user_id, include_collaborators=True)
                if task is None:
                    raise NotFoundError(TASK_NOT_FOUND)

                # side effects derive from the row as it is now, inside the lock
                now = self._clock.now()
                updated = apply_status_transition(task, status, now)
                if updated is task:
                    return task
                updated = replace(updated, updated_at=now)
                await uow.tasks.save(updated)
            return updated

        return await run_operation("update_task_status", op, self._retry)

    async def update_task_details(self, auth: AuthContext, task_id: str, changes: TaskChanges) -> Task:
        values = self._clean_changes(changes.supplied())

        async def op() -> Task:
            async with self._uow() as uow:
                task = await uow.tasks.find_for(task_id, auth.user_id, include_collaborators=False)
                if task is None:
                    raise NotFoundError(TASK_NOT_FOUND)
                if not values:
                    return task

                if "title" in values:
                    other = await uow.tasks.find_by_title_and_owner(values["title"], task.owner_id)
                    if other is not None and other.task_id != task.task_id:
                        raise ConflictError(DUPLICATE_TITLE)
                if "collaborators" in values:
                    await self._check_collaborators(uow, values["collaborators"])

                updated = replace(task, updated_at=self._clock.now(), **values)
                await uow.tasks.save(updated)
            return updated

        return await run_operation("update_task_details", op, self._retry)

    async def delete_task(self, auth: AuthContext, task_id: str) -> None:
        async def op() -> None:
            async with self._uow() as uow:
                if not await uow.tasks.delete_for_owner(task_id, auth.user_id):
                    raise NotFoundError(TASK_NOT_FOUND)

        await run_operation("delete_task", op, self._retry)
        logger.info(f"Task deleted: task_id={task_id}, owner_id={auth.user_id}")

    async def add_comment(self, auth: AuthContext, task_id: str, text: str) -> Task:
        text = clean_comment(text)

        async def op() -> Task:
            async with self._uow() as uow:
                task = await uow.tasks.find_for(task_id, auth.user_id, include_collaborators=True)
                if task is None:
                    raise NotFoundError(TASK_NOT_FOUND)
                now = self._clock.now()
                comment = Comment(author_id=auth.user_id, text=text, created_at=now)
                await uow.tasks.append_comment(task.task_id, comment, now)
            return replace(task, comments=task.comments + (comment,), updated_at=now)

        return await run_operation("add_comment", op, self._retry)

    def _clean_changes(self, supplied: Dict[str, Any]) -> Dict[str, Any]:
        errors = FieldErrors()
        values: Dict[str, Any] = {}
        for name, value in supplied.items():
            if name == "title":
                values[name] = clean_title(value, errors)
            elif name == "description":
                values[name] = clean_description(value, errors)
            elif name == "priority":
                if value is None:
                    errors.add("priority", "Priority cannot be empty")
                values[name] = clean_priority(value, errors)
            elif name == "due_date":
                # no future check on update: an existing task may keep or get a past date
                values[name] = parse_due_date(value, self._tz)
            elif name == "estimated_time":
                values[name] = clean_estimated_time(value, errors)
            elif name == "tags":
                values[name] = clean_tags(value, errors)
            elif name == "category":
                values[name] = clean_category(value, errors)
            elif name == "collaborators":
                values[name] = clean_collaborators(value, errors)
        errors.raise_if_any()
        return values

    async def _check_collaborators(self, uow: UnitOfWork, user_ids: Sequence[str]) -> None:
        if not user_ids:
            return
        count = await uow.users.count_existing(user_ids)
        if count == len(user_ids):
            return
        existing = await uow.users.existing_ids(user_ids)
        missing = [user_id for user_id in user_ids if user_id not in existing]
        raise BadRequestError(
            f"One or more collaborators don't exist: {', '.join(missing)}",
            fields={"collaborators": f"Unknown user id(s): {', '.join(missing)}"},
            ids=missing,
        )
