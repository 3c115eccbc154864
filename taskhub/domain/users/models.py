from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from taskhub.domain.common.models import Role


@dataclass(frozen=True)
class User:
    user_id: str
    username: str
    email: str
    role: Role
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class UserCredentials:
    user_id: str
    role: Role
    password_hash: str


@dataclass(frozen=True)
class RegisterUserRequest:
    username: str
    email: str
    password: str
    role: str = "user"
