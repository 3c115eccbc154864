"""
Closed value sets and field limits for users and tasks.
"""
from __future__ import annotations

# Task status
TASK_STATUS_PENDING = "pending"
TASK_STATUS_IN_PROGRESS = "in-progress"
TASK_STATUS_DONE = "done"
TASK_STATUSES = (TASK_STATUS_PENDING, TASK_STATUS_IN_PROGRESS, TASK_STATUS_DONE)

# Task priority, ordered low -> urgent
TASK_PRIORITY_LOW = "low"
TASK_PRIORITY_MEDIUM = "medium"
TASK_PRIORITY_HIGH = "high"
TASK_PRIORITY_URGENT = "urgent"
TASK_PRIORITIES = (TASK_PRIORITY_LOW, TASK_PRIORITY_MEDIUM, TASK_PRIORITY_HIGH, TASK_PRIORITY_URGENT)

# User roles
ROLE_USER = "user"
ROLE_MANAGER = "manager"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_USER, ROLE_MANAGER, ROLE_ADMIN)

DEFAULT_CATEGORY = "Uncategorized"

# Field limits
TITLE_MIN_LEN = 3
TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 1000
CATEGORY_MAX_LEN = 30
TAG_MAX_LEN = 20
COMMENT_MAX_LEN = 500
MAX_COLLABORATORS = 10
ESTIMATED_TIME_MIN = 1
ESTIMATED_TIME_MAX = 10080  # one week, in minutes

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 30
PASSWORD_MIN_LEN = 6

# Pagination defaults
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = "createdAt"
SORT_FIELDS = ("createdAt", "updatedAt", "dueDate", "priority", "status", "title", "estimatedTime", "completedAt")
