from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from taskhub.constants import (
    CATEGORY_MAX_LEN,
    COMMENT_MAX_LEN,
    DEFAULT_CATEGORY,
    DESCRIPTION_MAX_LEN,
    ESTIMATED_TIME_MAX,
    ESTIMATED_TIME_MIN,
    MAX_COLLABORATORS,
    TAG_MAX_LEN,
    TASK_PRIORITIES,
    TASK_STATUSES,
    TITLE_MAX_LEN,
    TITLE_MIN_LEN,
)
from taskhub.domain.common.errors import BadRequestError, FieldErrors


def clean_title(title: str, errors: FieldErrors) -> str:
    value = (title or "").strip()
    if not value:
        errors.add("title", "Title is required")
    elif len(value) < TITLE_MIN_LEN:
        errors.add("title", f"Title must be at least {TITLE_MIN_LEN} characters")
    elif len(value) > TITLE_MAX_LEN:
        errors.add("title", "Title too long")
    return value


def clean_description(description: str, errors: FieldErrors) -> str:
    value = (description or "").strip()
    if not value:
        errors.add("description", "Description is required")
    elif len(value) > DESCRIPTION_MAX_LEN:
        errors.add("description", "Description too long")
    return value


def clean_priority(priority: Optional[str], errors: FieldErrors) -> Optional[str]:
    if priority is not None and priority not in TASK_PRIORITIES:
        errors.add("priority", f"must be one of {', '.join(TASK_PRIORITIES)}")
    return priority


def clean_status(status: Optional[str], errors: FieldErrors) -> Optional[str]:
    if status is not None and status not in TASK_STATUSES:
        errors.add("status", f"must be one of {', '.join(TASK_STATUSES)}")
    return status


def clean_category(category: Optional[str], errors: FieldErrors) -> str:
    value = (category or "").strip()
    if not value:
        return DEFAULT_CATEGORY
    if len(value) > CATEGORY_MAX_LEN:
        errors.add("category", "Category too long")
    return value


def clean_tags(tags: Optional[Sequence[str]], errors: FieldErrors) -> Tuple[str, ...]:
    values = tuple(t.strip() for t in (tags or ()))
    if any(len(t) > TAG_MAX_LEN for t in values):
        errors.add("tags", f"Tags max {TAG_MAX_LEN} chars")
    return values


def clean_collaborators(ids: Optional[Sequence[str]], errors: FieldErrors) -> Tuple[str, ...]:
    # set semantics, first occurrence wins
    seen: List[str] = []
    for user_id in ids or ():
        if user_id not in seen:
            seen.append(user_id)
    if len(seen) > MAX_COLLABORATORS:
        errors.add("collaborators", f"At most {MAX_COLLABORATORS} collaborators")
    return tuple(seen)


def clean_estimated_time(minutes: Optional[int], errors: FieldErrors) -> Optional[int]:
    if minutes is None:
        return None
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        errors.add("estimatedTime", "must be a whole number of minutes")
    elif minutes < ESTIMATED_TIME_MIN:
        errors.add("estimatedTime", f"At least {ESTIMATED_TIME_MIN} min")
    elif minutes > ESTIMATED_TIME_MAX:
        errors.add("estimatedTime", f"Max {ESTIMATED_TIME_MAX} min")
    return minutes


def check_due_date_in_future(due_date: Optional[datetime], now: datetime, errors: FieldErrors) -> None:
    # creation only; updates keep whatever date the owner sets
    if due_date is not None and due_date <= now:
        errors.add("dueDate", "Due date must be in future")


def clean_comment(text: str) -> str:
    value = (text or "").strip()
    if not value:
        raise BadRequestError.from_fields({"text": "Comment text is required"})
    if len(value) > COMMENT_MAX_LEN:
        raise BadRequestError.from_fields({"text": "Comment too long"})
    return value
