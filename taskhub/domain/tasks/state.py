"""
Status transition rules for tasks.

Any status may move to any other; this module only derives the timestamp
side effects, so the service and the stale-task sweep stay consistent:

- entering ``done`` sets ``completed_at`` if it is unset
- leaving ``done`` clears ``completed_at``
- the first entry into ``in-progress`` sets ``started_at``; it is never cleared
- a transition to the current status changes nothing
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from taskhub.constants import TASK_STATUSES, TASK_STATUS_DONE, TASK_STATUS_IN_PROGRESS
from taskhub.domain.common.errors import BadRequestError
from taskhub.domain.common.time import ensure_aware
from taskhub.domain.tasks.models import Task


def apply_status_transition(task: Task, new_status: str, now: datetime) -> Task:
    if new_status not in TASK_STATUSES:
        raise BadRequestError.from_fields({"status": f"must be one of {', '.join(TASK_STATUSES)}"})
    ensure_aware(now)

    if new_status == task.status:
        return task

    started_at = task.started_at
    completed_at = task.completed_at

    if new_status == TASK_STATUS_DONE:
        if completed_at is None:
            completed_at = now
    else:
        completed_at = None

    if new_status == TASK_STATUS_IN_PROGRESS and started_at is None:
        started_at = now

    return replace(task, status=new_status, started_at=started_at, completed_at=completed_at)
