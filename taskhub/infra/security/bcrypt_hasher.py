from __future__ import annotations

import logging

import bcrypt

from taskhub.domain.users.ports import SecretHasher

logger = logging.getLogger(__name__)


class BcryptHasher(SecretHasher):
    def __init__(self, rounds: int = 10) -> None:
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("ascii")

    def verify(self, secret: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("ascii"))
        except ValueError:
            logger.error("Password comparison error: stored hash is malformed")
            return False
