"""
Tests for user registration, credential checks and the bcrypt hasher.

Run with: python -m pytest tests/test_users.py -v
"""
from __future__ import annotations

import asyncio

import pytest

from taskhub.domain.common.errors import AuthenticationError, BadRequestError, ConflictError, NotFoundError
from taskhub.domain.common.models import AuthContext
from taskhub.domain.users.models import RegisterUserRequest
from taskhub.infra.security.bcrypt_hasher import BcryptHasher


def _req(username="alice", email="Alice@Example.com", password="Passw0rd", role="user"):
    return RegisterUserRequest(username=username, email=email, password=password, role=role)


def test_register_normalizes_email_and_defaults_role(env):
    async def run():
        await env.setup()
        user = await env.users.register(_req())
        assert user.email == "alice@example.com"
        assert user.role == "user"
        assert user.created_at == env.clock.now()

        profile = await env.users.get_profile(AuthContext(user_id=user.user_id))
        assert profile == user

    asyncio.run(run())


def test_register_duplicate_email_or_username_is_conflict(env):
    async def run():
        await env.setup()
        await env.users.register(_req())
        with pytest.raises(ConflictError) as exc:
            await env.users.register(_req(username="alice2", email="ALICE@example.com"))
        assert exc.value.message == "User with this email already exists"

        with pytest.raises(ConflictError) as exc:
            await env.users.register(_req(email="other@example.com"))
        assert exc.value.message == "User with this username already exists"

    asyncio.run(run())


def test_register_validation(env):
    async def run():
        await env.setup()
        with pytest.raises(BadRequestError) as exc:
            await env.users.register(_req(username="a b", email="nope", password="weakpass", role="root"))
        assert set(exc.value.fields) == {"username", "email", "password", "role"}

    asyncio.run(run())


def test_authenticate(env):
    async def run():
        await env.setup()
        user = await env.users.register(_req(role="manager"))

        auth = await env.users.authenticate(" ALICE@example.com ", "Passw0rd")
        assert auth == AuthContext(user_id=user.user_id, role="manager")

        with pytest.raises(AuthenticationError):
            await env.users.authenticate("alice@example.com", "wrong")
        with pytest.raises(AuthenticationError):
            await env.users.authenticate("nobody@example.com", "Passw0rd")

    asyncio.run(run())


def test_profile_of_unknown_user_is_not_found(env):
    async def run():
        await env.setup()
        with pytest.raises(NotFoundError):
            await env.users.get_profile(AuthContext(user_id="ghost"))

    asyncio.run(run())


def test_bcrypt_hasher_roundtrip():
    hasher = BcryptHasher(rounds=4)
    hashed = hasher.hash("Passw0rd")
    assert hashed != "Passw0rd"
    assert hasher.verify("Passw0rd", hashed)
    assert not hasher.verify("passw0rd", hashed)


def test_bcrypt_hasher_malformed_hash_is_false():
    assert BcryptHasher(rounds=4).verify("Passw0rd", "not-a-bcrypt-hash") is False
