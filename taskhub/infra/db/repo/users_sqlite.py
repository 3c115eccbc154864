from __future__ import annotations

from typing import Optional, Sequence, Set

from taskhub.domain.common.time import from_iso, to_iso
from taskhub.domain.users.models import User, UserCredentials
from taskhub.domain.users.ports import UserRepository
from taskhub.infra.db.connection import Session

_USER_COLUMNS = "user_id, username, email, role, created_at, updated_at"


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


class UserSqliteRepo(UserRepository):
    def __init__(self, session: Session) -> None:
        self._s = session

    async def get(self, user_id: str) -> Optional[User]:
        row = await self._s.fetchone(f"SELECT {_USER_COLUMNS} FROM users WHERE user_id = ?;", (user_id,))
        return self._row_to_user(row) if row else None

    async def count_existing(self, user_ids: Sequence[str]) -> int:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return 0
        row = await self._s.fetchone(
            f"SELECT COUNT(*) AS n FROM users WHERE user_id IN ({_placeholders(len(ids))});",
            ids,
        )
        return int(row["n"]) if row else 0

    async def existing_ids(self, user_ids: Sequence[str]) -> Set[str]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return set()
        rows = await self._s.fetchall(
            f"SELECT user_id FROM users WHERE user_id IN ({_placeholders(len(ids))});",
            ids,
        )
        return {r["user_id"] for r in rows}

    async def find_by_email(self, email: str) -> Optional[User]:
        row = await self._s.fetchone(f"SELECT {_USER_COLUMNS} FROM users WHERE email = ?;", (email,))
        return self._row_to_user(row) if row else None

    async def find_by_username(self, username: str) -> Optional[User]:
        row = await self._s.fetchone(f"SELECT {_USER_COLUMNS} FROM users WHERE username = ?;", (username,))
        return self._row_to_user(row) if row else None

    async def get_credentials(self, email: str) -> Optional[UserCredentials]:
        row = await self._s.fetchone(
            "SELECT user_id, role, password_hash FROM users WHERE email = ?;",
            (email,),
        )
        if not row:
            return None
        return UserCredentials(user_id=row["user_id"], role=row["role"], password_hash=row["password_hash"])

    async def insert(self, user: User, password_hash: str) -> None:
        await self._s.execute(
            """
            INSERT INTO users(user_id, username, email, password_hash, role, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                user.user_id,
                user.username,
                user.email,
                password_hash,
                user.role,
                to_iso(user.created_at),
                to_iso(user.updated_at),
            ),
        )

    def _row_to_user(self, row) -> User:
        return User(
            user_id=row["user_id"],
            username=row["username"],
            email=row["email"],
            role=row["role"],
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
