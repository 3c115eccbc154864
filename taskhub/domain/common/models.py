from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Role = Literal["user", "manager", "admin"]


@dataclass(frozen=True)
class AuthContext:
    """Verified identity of the caller, resolved before any core operation runs."""

    user_id: str
    role: Role = "user"
