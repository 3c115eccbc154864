from __future__ import annotations

import asyncio
import logging

from taskhub.domain.common.errors import AuthenticationError, ConflictError, FieldErrors, NotFoundError
from taskhub.domain.common.models import AuthContext
from taskhub.domain.common.ports import Clock, IdGenerator
from taskhub.domain.common.retry import RetryPolicy, run_operation
from taskhub.domain.tasks.ports import UnitOfWorkFactory
from taskhub.domain.users.models import RegisterUserRequest, User
from taskhub.domain.users.ports import SecretHasher
from taskhub.domain.users.rules import check_password, clean_email, clean_role, clean_username

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class UserService:
    def __init__(
        self,
        uow: UnitOfWorkFactory,
        clock: Clock,
        ids: IdGenerator,
        hasher: SecretHasher,
        retry: RetryPolicy = RetryPolicy(),
    ) -> None:
        self._uow = uow
        self._clock = clock
        self._ids = ids
        self._hasher = hasher
        self._retry = retry

    async def register(self, req: RegisterUserRequest) -> User:
        errors = FieldErrors()
        username = clean_username(req.username, errors)
        email = clean_email(req.email, errors)
        check_password(req.password, errors)
        role = clean_role(req.role, errors)
        errors.raise_if_any()

        # hashing is CPU-bound; keep it off the event loop
        password_hash = await asyncio.to_thread(self._hasher.hash, req.password)

        async def op() -> User:
            async with self._uow() as uow:
                if await uow.users.find_by_email(email) is not None:
                    raise ConflictError("User with this email already exists")
                if await uow.users.find_by_username(username) is not None:
                    raise ConflictError("User with this username already exists")
                now = self._clock.now()
                user = User(
                    user_id=self._ids.new_id(),
                    username=username,
                    email=email,
                    role=role,
                    created_at=now,
                    updated_at=now,
                )
                await uow.users.insert(user, password_hash)
            return user

        user = await run_operation("register_user", op, self._retry)
        logger.info(f"User registered: user_id={user.user_id}, role={user.role}")
        return user

    async def authenticate(self, email: str, password: str) -> AuthContext:
        normalized = (email or "").strip().lower()

        async def op():
            async with self._uow() as uow:
                return await uow.users.get_credentials(normalized)

        creds = await run_operation("authenticate", op, self._retry)
        if creds is None or not password:
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not await asyncio.to_thread(self._hasher.verify, password, creds.password_hash):
            raise AuthenticationError(INVALID_CREDENTIALS)
        return AuthContext(user_id=creds.user_id, role=creds.role)

    async def get_profile(self, auth: AuthContext) -> User:
        async def op() -> User:
            async with self._uow() as uow:
                user = await uow.users.get(auth.user_id)
            if user is None:
                raise NotFoundError("User not found")
            return user

        return await run_operation("get_profile", op, self._retry)
