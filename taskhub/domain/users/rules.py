from __future__ import annotations

import re

from taskhub.constants import PASSWORD_MIN_LEN, USERNAME_MAX_LEN, USERNAME_MIN_LEN, USER_ROLES
from taskhub.domain.common.errors import FieldErrors

_USERNAME = re.compile(r"^[a-zA-Z0-9_-]+$")
_EMAIL = re.compile(r"^\S+@\S+\.\S+$")
_STRONG_PASSWORD = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).+$")


def clean_username(username: str, errors: FieldErrors) -> str:
    value = (username or "").strip()
    if not value:
        errors.add("username", "Username is required")
    elif len(value) < USERNAME_MIN_LEN:
        errors.add("username", f"Username must be at least {USERNAME_MIN_LEN} characters")
    elif len(value) > USERNAME_MAX_LEN:
        errors.add("username", "Username too long")
    elif not _USERNAME.match(value):
        errors.add(
            "username",
            f"{value} is not a valid username. Use only letters, numbers, underscores, or hyphens.",
        )
    return value


def clean_email(email: str, errors: FieldErrors) -> str:
    value = (email or "").strip().lower()
    if not value:
        errors.add("email", "Email is required")
    elif not _EMAIL.match(value):
        errors.add("email", "Invalid email address")
    return value


def check_password(password: str, errors: FieldErrors) -> None:
    if not password:
        errors.add("password", "Password is required")
    elif len(password) < PASSWORD_MIN_LEN:
        errors.add("password", f"Password must be at least {PASSWORD_MIN_LEN} characters")
    elif not _STRONG_PASSWORD.match(password):
        errors.add("password", "Password must have at least one uppercase, one lowercase, and one number")


def clean_role(role: str, errors: FieldErrors) -> str:
    value = (role or "user").strip().lower()
    if value not in USER_ROLES:
        errors.add("role", f"Invalid role. Must be one of: {', '.join(USER_ROLES)}")
    return value
