# -*- coding: utf-8 -*-
"""tasks, task_tags, task_collaborators and task_comments tables."""
from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from taskhub.domain.common.time import from_iso, opt_from_iso, opt_to_iso, to_iso
from taskhub.domain.tasks.models import Comment, Task, TaskCriteria, TaskSort
from taskhub.domain.tasks.ports import TaskRepository
from taskhub.infra.db.connection import Session

_TASK_COLUMNS = (
    "t.task_id, t.owner_id, t.title, t.description, t.status, t.priority, t.category, "
    "t.due_date, t.estimated_time, t.started_at, t.completed_at, t.created_at, t.updated_at"
)

_PRIORITY_RANK = "CASE t.priority WHEN 'low' THEN 0 WHEN 'medium' THEN 1 WHEN 'high' THEN 2 ELSE 3 END"
_STATUS_RANK = "CASE t.status WHEN 'pending' THEN 0 WHEN 'in-progress' THEN 1 ELSE 2 END"

# caller-facing sort field -> SQL expression
SORT_COLUMNS = {
    "createdAt": "t.created_at",
    "updatedAt": "t.updated_at",
    "dueDate": "t.due_date",
    "priority": _PRIORITY_RANK,
    "status": _STATUS_RANK,
    "title": "t.title_key",
    "estimatedTime": "t.estimated_time",
    "completedAt": "t.completed_at",
}


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


def build_where(c: TaskCriteria) -> Tuple[str, List[Any]]:
    """WHERE clause for a criteria set; every category narrows the result."""
    clauses: List[str] = []
    params: List[Any] = []

    if c.include_collaborations:
        clauses.append(
            "(t.owner_id = ? OR EXISTS ("
            "SELECT 1 FROM task_collaborators tc WHERE tc.task_id = t.task_id AND tc.user_id = ?))"
        )
        params += [c.requester_id, c.requester_id]
    else:
        clauses.append("t.owner_id = ?")
        params.append(c.requester_id)

    if c.status:
        clauses.append("t.status = ?")
        params.append(c.status)
    if c.priority:
        clauses.append("t.priority = ?")
        params.append(c.priority)
    if c.tags:
        # any listed tag
        clauses.append(
            "EXISTS (SELECT 1 FROM task_tags tg WHERE tg.task_id = t.task_id "
            f"AND tg.tag IN ({_placeholders(len(c.tags))}))"
        )
        params += list(c.tags)
    if c.category:
        clauses.append("t.category = ?")
        params.append(c.category)
    if c.search:
        # literal substring; casefold() is registered on every connection
        term = c.search.casefold()
        clauses.append("(instr(casefold(t.title), ?) > 0 OR instr(casefold(t.description), ?) > 0)")
        params += [term, term]
    if c.due_from is not None:
        clauses.append("t.due_date >= ?")
        params.append(to_iso(c.due_from))
    if c.due_to is not None:
        clauses.append("t.due_date <= ?")
        params.append(to_iso(c.due_to))
    if c.overdue_at is not None:
        clauses.append("t.due_date < ? AND t.status <> 'done'")
        params.append(to_iso(c.overdue_at))

    return " AND ".join(clauses), params


class TaskSqliteRepo(TaskRepository):
    def __init__(self, session: Session) -> None:
        self._s = session

    async def get(self, task_id: str) -> Optional[Task]:
        row = await self._s.fetchone(f"SELECT {_TASK_COLUMNS} FROM tasks t WHERE t.task_id = ?;", (task_id,))
        return (await self._hydrate([row]))[0] if row else None

    async def find_for(self, task_id: str, user_id: str, include_collaborators: bool) -> Optional[Task]:
        if include_collaborators:
            row = await self._s.fetchone(
                f"""
                SELECT {_TASK_COLUMNS}
                FROM tasks t
                WHERE t.task_id = ?
                  AND (t.owner_id = ? OR EXISTS (
                        SELECT 1 FROM task_collaborators tc
                        WHERE tc.task_id = t.task_id AND tc.user_id = ?));
                """,
                (task_id, user_id, user_id),
            )
        else:
            row = await self._s.fetchone(
                f"SELECT {_TASK_COLUMNS} FROM tasks t WHERE t.task_id = ? AND t.owner_id = ?;",
                (task_id, user_id),
            )
        return (await self._hydrate([row]))[0] if row else None

    async def find_by_title_and_owner(self, title: str, owner_id: str) -> Optional[Task]:
        row = await self._s.fetchone(
            f"SELECT {_TASK_COLUMNS} FROM tasks t WHERE t.owner_id = ? AND t.title_key = ?;",
            (owner_id, title.casefold()),
        )
        return (await self._hydrate([row]))[0] if row else None

    async def insert(self, task: Task) -> None:
        await self._s.execute(
            """
            INSERT INTO tasks(
              task_id, owner_id, title, title_key, description, status, priority, category,
              due_date, estimated_time, started_at, completed_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                task.task_id,
                task.owner_id,
                task.title,
                task.title.casefold(),
                task.description,
                task.status,
                task.priority,
                task.category,
                opt_to_iso(task.due_date),
                task.estimated_time,
                opt_to_iso(task.started_at),
                opt_to_iso(task.completed_at),
                to_iso(task.created_at),
                to_iso(task.updated_at),
            ),
        )
        await self._write_tags(task.task_id, task.tags)
        await self._write_collaborators(task.task_id, task.collaborators)

    async def save(self, task: Task) -> None:
        await self._s.execute(
            """
            UPDATE tasks
            SET title = ?,
                title_key = ?,
                description = ?,
                status = ?,
                priority = ?,
                category = ?,
                due_date = ?,
                estimated_time = ?,
                started_at = ?,
                completed_at = ?,
                updated_at = ?
            WHERE task_id = ?;
            """,
            (
                task.title,
                task.title.casefold(),
                task.description,
                task.status,
                task.priority,
                task.category,
                opt_to_iso(task.due_date),
                task.estimated_time,
                opt_to_iso(task.started_at),
                opt_to_iso(task.completed_at),
                to_iso(task.updated_at),
                task.task_id,
            ),
        )
        await self._s.execute("DELETE FROM task_tags WHERE task_id = ?;", (task.task_id,))
        await self._write_tags(task.task_id, task.tags)
        await self._s.execute("DELETE FROM task_collaborators WHERE task_id = ?;", (task.task_id,))
        await self._write_collaborators(task.task_id, task.collaborators)

    async def delete_for_owner(self, task_id: str, owner_id: str) -> bool:
        deleted = await self._s.execute(
            "DELETE FROM tasks WHERE task_id = ? AND owner_id = ?;",
            (task_id, owner_id),
        )
        return deleted > 0

    async def append_comment(self, task_id: str, comment: Comment, now: datetime) -> None:
        await self._s.execute(
            "INSERT INTO task_comments(task_id, author_id, text, created_at) VALUES (?, ?, ?, ?);",
            (task_id, comment.author_id, comment.text, to_iso(comment.created_at)),
        )
        await self._s.execute("UPDATE tasks SET updated_at = ? WHERE task_id = ?;", (to_iso(now), task_id))

    async def search(self, criteria: TaskCriteria, sort: TaskSort, skip: int, limit: int) -> Sequence[Task]:
        where, params = build_where(criteria)
        order = SORT_COLUMNS[sort.sort_by]
        direction = "DESC" if sort.descending else "ASC"
        rows = await self._s.fetchall(
            f"""
            SELECT {_TASK_COLUMNS}
            FROM tasks t
            WHERE {where}
            ORDER BY {order} {direction}, t.rowid ASC
            LIMIT ? OFFSET ?;
            """,
            [*params, limit, skip],
        )
        return await self._hydrate(rows)

    async def count(self, criteria: TaskCriteria) -> int:
        where, params = build_where(criteria)
        row = await self._s.fetchone(f"SELECT COUNT(*) AS n FROM tasks t WHERE {where};", params)
        return int(row["n"]) if row else 0

    async def list_stale_in_progress(self, started_before: datetime) -> Sequence[str]:
        rows = await self._s.fetchall(
            """
            SELECT task_id
            FROM tasks
            WHERE status = 'in-progress' AND started_at < ?
            ORDER BY started_at ASC;
            """,
            (to_iso(started_before),),
        )
        return [r["task_id"] for r in rows]

    async def _write_tags(self, task_id: str, tags: Sequence[str]) -> None:
        if tags:
            await self._s.executemany(
                "INSERT INTO task_tags(task_id, position, tag) VALUES (?, ?, ?);",
                [(task_id, i, tag) for i, tag in enumerate(tags)],
            )

    async def _write_collaborators(self, task_id: str, user_ids: Sequence[str]) -> None:
        if user_ids:
            await self._s.executemany(
                "INSERT INTO task_collaborators(task_id, user_id, position) VALUES (?, ?, ?);",
                [(task_id, user_id, i) for i, user_id in enumerate(user_ids)],
            )

    async def _hydrate(self, rows: Sequence[Any]) -> List[Task]:
        """Attach tags, collaborators and comments to task rows, in row order."""
        if not rows:
            return []
        ids = [r["task_id"] for r in rows]
        marks = _placeholders(len(ids))

        tags: Dict[str, List[str]] = defaultdict(list)
        for r in await self._s.fetchall(
            f"SELECT task_id, tag FROM task_tags WHERE task_id IN ({marks}) ORDER BY task_id, position;", ids
        ):
            tags[r["task_id"]].append(r["tag"])

        collaborators: Dict[str, List[str]] = defaultdict(list)
        for r in await self._s.fetchall(
            f"SELECT task_id, user_id FROM task_collaborators WHERE task_id IN ({marks}) ORDER BY task_id, position;",
            ids,
        ):
            collaborators[r["task_id"]].append(r["user_id"])

        comments: Dict[str, List[Comment]] = defaultdict(list)
        for r in await self._s.fetchall(
            f"""
            SELECT task_id, author_id, text, created_at
            FROM task_comments
            WHERE task_id IN ({marks})
            ORDER BY comment_id ASC;
            """,
            ids,
        ):
            comments[r["task_id"]].append(
                Comment(author_id=r["author_id"], text=r["text"], created_at=from_iso(r["created_at"]))
            )

        return [
            self._row_to_task(r, tags[r["task_id"]], collaborators[r["task_id"]], comments[r["task_id"]])
            for r in rows
        ]

    def _row_to_task(self, row, tags: List[str], collaborators: List[str], comments: List[Comment]) -> Task:
        return Task(
            task_id=row["task_id"],
            owner_id=row["owner_id"],
            title=row["title"],
            description=row["description"],
            status=row["status"],
            priority=row["priority"],
            category=row["category"],
            tags=tuple(tags),
            collaborators=tuple(collaborators),
            due_date=opt_from_iso(row["due_date"]),
            estimated_time=row["estimated_time"],
            started_at=opt_from_iso(row["started_at"]),
            completed_at=opt_from_iso(row["completed_at"]),
            comments=tuple(comments),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
