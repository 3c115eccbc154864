# taskhub/infra/db/connection.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Iterable, Optional, Sequence, TypeVar

import aiosqlite

from taskhub.infra.db.errors import translate_error

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _casefold(value: Optional[str]) -> Optional[str]:
    return value.casefold() if isinstance(value, str) else value


async def _bounded(aw: Awaitable[T], timeout: float) -> T:
    """One store round trip: bounded by ``timeout``, errors translated."""
    try:
        return await asyncio.wait_for(aw, timeout)
    except Exception as e:
        raise translate_error(e) from e


class Session:
    """
    A single connection inside an explicit transaction.

    Opened by Database.begin(); the owner must call commit() or rollback()
    and then close().
    """

    def __init__(self, conn: aiosqlite.Connection, timeout: float) -> None:
        self._conn = conn
        self._timeout = timeout

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        async def run() -> int:
            cur = await self._conn.execute(sql, params)
            return cur.rowcount

        return await _bounded(run(), self._timeout)

    async def executemany(self, sql: str, seq_of_params: Iterable[Sequence[Any]]) -> None:
        await _bounded(self._conn.executemany(sql, seq_of_params), self._timeout)

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        async def run() -> Optional[aiosqlite.Row]:
            cur = await self._conn.execute(sql, params)
            return await cur.fetchone()

        return await _bounded(run(), self._timeout)

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async def run() -> list[aiosqlite.Row]:
            cur = await self._conn.execute(sql, params)
            return list(await cur.fetchall())

        return await _bounded(run(), self._timeout)

    async def commit(self) -> None:
        await _bounded(self._conn.execute("COMMIT;"), self._timeout)

    async def rollback(self) -> None:
        try:
            await _bounded(self._conn.execute("ROLLBACK;"), self._timeout)
        except Exception as e:
            # the error that triggered the rollback is the one to surface
            logger.warning(f"Rollback failed: {e}")

    async def close(self) -> None:
        await self._conn.close()


class Database:
    """
    Async SQLite helper:
    - opens a new connection per operation or per transaction
    - sets row_factory to aiosqlite.Row
    - enables WAL + foreign keys
    - registers a casefold() SQL function
    - bounds every round trip by ``timeout`` seconds
    """

    def __init__(self, path: str, timeout: float = 5.0) -> None:
        self._path = path
        self._timeout = timeout

    @property
    def path(self) -> str:
        return self._path

    async def _open(self) -> aiosqlite.Connection:
        conn = await _bounded(
            aiosqlite.connect(self._path, isolation_level=None, timeout=self._timeout),
            self._timeout,
        )
        conn.row_factory = aiosqlite.Row
        try:
            await _bounded(conn.execute("PRAGMA foreign_keys=ON;"), self._timeout)
            # sqlite lower() and NOCASE fold ASCII only
            await _bounded(conn.create_function("casefold", 1, _casefold, deterministic=True), self._timeout)
        except Exception:
            await conn.close()
            raise
        return conn

    async def begin(self) -> Session:
        conn = await self._open()
        try:
            # take the write lock up front so check-then-write runs serialized
            await _bounded(conn.execute("BEGIN IMMEDIATE;"), self._timeout)
        except Exception:
            await conn.close()
            raise
        return Session(conn, self._timeout)

    async def executescript(self, sql: str) -> None:
        conn = await self._open()
        try:
            await _bounded(conn.execute("PRAGMA journal_mode=WAL;"), self._timeout)
            await _bounded(conn.executescript(sql), self._timeout)
        finally:
            await conn.close()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> None:
        conn = await self._open()
        try:
            await _bounded(conn.execute(sql, params), self._timeout)
        finally:
            await conn.close()

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        conn = await self._open()
        try:
            session = Session(conn, self._timeout)
            return await session.fetchone(sql, params)
        finally:
            await conn.close()

    async def ping(self) -> bool:
        """True when the store answers a trivial query."""
        try:
            row = await self.fetchone("SELECT 1 AS ok;")
        except Exception as e:
            logger.warning(f"Store ping failed: {e}")
            return False
        return bool(row and row["ok"] == 1)
