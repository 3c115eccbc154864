from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence, Set

from taskhub.domain.users.models import User, UserCredentials


class SecretHasher(ABC):
    @abstractmethod
    def hash(self, secret: str) -> str: ...

    @abstractmethod
    def verify(self, secret: str, hashed: str) -> bool: ...


class UserRepository(ABC):
    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def count_existing(self, user_ids: Sequence[str]) -> int: ...

    @abstractmethod
    async def existing_ids(self, user_ids: Sequence[str]) -> Set[str]: ...

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    async def get_credentials(self, email: str) -> Optional[UserCredentials]: ...

    @abstractmethod
    async def insert(self, user: User, password_hash: str) -> None: ...
