"""
SQLite connections using aiosqlite.

Connection strings look like `sqlite:///relative/path.db` or
`sqlite:////absolute/path.db`; a bare filesystem path is accepted too.
Connections run in autocommit mode and transactions are opened explicitly
with BEGIN, so the executor decides where atomic work starts and ends.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Sequence, TypeVar

import aiosqlite

from .connection import Connection, ConnectionFactory, IsolationLevel
from .errors import ConstraintViolationError, DataAccessError, QueryError

T = TypeVar("T")

SQLITE_PRAGMAS = [
    "PRAGMA journal_mode = WAL",  # readers never block the writer
    "PRAGMA foreign_keys = ON",
    "PRAGMA busy_timeout = 5000",
]


def database_path(connection_string: str) -> str:
    value = (connection_string or "").strip()
    if value.startswith("sqlite:///"):
        return value[len("sqlite:///") :]
    if value.startswith("sqlite://"):
        return value[len("sqlite://") :]
    return value


class SqliteConnection(Connection):
    paramstyle = "qmark"
    driver = "sqlite"

    def __init__(self, path: str, *, command_timeout: float | None = None, connect_timeout: float = 10.0):
        super().__init__(command_timeout=command_timeout)
        self.path = path
        self._connect_timeout = connect_timeout
        self._conn: aiosqlite.Connection | None = None

    @property
    def raw(self) -> aiosqlite.Connection:
        self._ensure_open()
        assert self._conn is not None
        return self._conn

    async def _with_timeout(self, awaitable: Awaitable[T], timeout: float | None) -> T:
        if timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout)

    async def _open(self) -> None:
        conn = await aiosqlite.connect(self.path, timeout=self._connect_timeout, isolation_level=None)
        try:
            for pragma in SQLITE_PRAGMAS:
                await conn.execute(pragma)
        except Exception:
            await conn.close()
            raise
        self._conn = conn

    async def _close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()

    async def _query(self, sql: str, args: Sequence[Any]) -> tuple[list[str], list[tuple[Any, ...]]]:
        async with self.raw.execute(sql, tuple(args)) as cursor:
            rows = await cursor.fetchall()
            columns = [col[0] for col in cursor.description or ()]
        return columns, [tuple(row) for row in rows]

    async def _fetch(
        self, sql: str, args: Sequence[Any], timeout: float | None
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        return await self._with_timeout(self._query(sql, args), timeout)

    async def _run(self, sql: str, args: Sequence[Any]) -> int:
        async with self.raw.execute(sql, tuple(args)) as cursor:
            return max(cursor.rowcount, 0)

    async def _execute(self, sql: str, args: Sequence[Any], timeout: float | None) -> int:
        return await self._with_timeout(self._run(sql, args), timeout)

    async def _run_many(self, sql: str, arg_sets: list[Sequence[Any]]) -> int:
        # sqlite3 sums the modifications of every parameter set into rowcount.
        cursor = await self.raw.executemany(sql, [tuple(args) for args in arg_sets])
        try:
            return max(cursor.rowcount, 0)
        finally:
            await cursor.close()

    async def _atomic_many(self, sql: str, arg_sets: list[Sequence[Any]]) -> int:
        await self.raw.execute("BEGIN")
        try:
            total = await self._run_many(sql, arg_sets)
        except BaseException:
            await self.raw.execute("ROLLBACK")
            raise
        await self.raw.execute("COMMIT")
        return total

    async def _execute_many(
        self, sql: str, arg_sets: list[Sequence[Any]], timeout: float | None
    ) -> int:
        if self.in_transaction:
            return await self._with_timeout(self._run_many(sql, arg_sets), timeout)
        return await self._with_timeout(self._atomic_many(sql, arg_sets), timeout)

    async def _begin(self, isolation_level: IsolationLevel) -> None:
        # SQLite transactions are always serializable; IMMEDIATE takes the write lock up front.
        if isolation_level is IsolationLevel.SERIALIZABLE:
            await self.raw.execute("BEGIN IMMEDIATE")
        else:
            await self.raw.execute("BEGIN")

    async def _commit(self) -> None:
        await self.raw.execute("COMMIT")

    async def _rollback(self) -> None:
        await self.raw.execute("ROLLBACK")

    def _translate_error(self, exc: Exception) -> DataAccessError | None:
        if isinstance(exc, aiosqlite.IntegrityError):
            return ConstraintViolationError(str(exc))
        if isinstance(exc, (aiosqlite.Error, ValueError, TypeError)):
            return QueryError(str(exc))
        return None


class SqliteConnectionFactory(ConnectionFactory):
    def _create(self) -> SqliteConnection:
        return SqliteConnection(
            database_path(self.connection_string),
            command_timeout=self.command_timeout,
            connect_timeout=self.connect_timeout,
        )
