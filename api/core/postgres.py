"""
PostgreSQL connections using asyncpg.

One asyncpg connection per `PostgresConnection`; nothing is pooled here.
"""

from __future__ import annotations

from typing import Any, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg

from .connection import Connection, ConnectionFactory, IsolationLevel
from .errors import (
    ConstraintViolationError,
    DataAccessError,
    DatabaseConnectionError,
    QueryError,
)


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def _affected_rows(status: str | None) -> int:
    # asyncpg returns the command tag, e.g. "INSERT 0 3", "UPDATE 2", "CREATE TABLE".
    last = (status or "").rsplit(" ", 1)[-1]
    return int(last) if last.isdigit() else 0


class PostgresConnection(Connection):
    paramstyle = "numeric"
    driver = "postgres"

    def __init__(self, dsn: str, *, command_timeout: float | None = None, connect_timeout: float = 10.0):
        super().__init__(command_timeout=command_timeout)
        self._dsn = dsn
        self._connect_timeout = connect_timeout
        self._conn: asyncpg.Connection | None = None
        self._transaction: Any = None

    @property
    def raw(self) -> asyncpg.Connection:
        self._ensure_open()
        assert self._conn is not None
        return self._conn

    async def _open(self) -> None:
        self._conn = await asyncpg.connect(dsn=self._dsn, timeout=self._connect_timeout)

    async def _close(self) -> None:
        conn, self._conn, self._transaction = self._conn, None, None
        if conn is not None:
            await conn.close()

    async def _fetch(
        self, sql: str, args: Sequence[Any], timeout: float | None
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        stmt = await self.raw.prepare(sql, timeout=timeout)
        records = await stmt.fetch(*args, timeout=timeout)
        columns = [attr.name for attr in stmt.get_attributes()]
        return columns, [tuple(record) for record in records]

    async def _execute(self, sql: str, args: Sequence[Any], timeout: float | None) -> int:
        status = await self.raw.execute(sql, *args, timeout=timeout)
        return _affected_rows(status)

    async def _run_batch(self, sql: str, arg_sets: list[Sequence[Any]], timeout: float | None) -> int:
        stmt = await self.raw.prepare(sql, timeout=timeout)
        total = 0
        for args in arg_sets:
            await stmt.fetch(*args, timeout=timeout)
            total += _affected_rows(stmt.get_statusmsg())
        return total

    async def _execute_many(
        self, sql: str, arg_sets: list[Sequence[Any]], timeout: float | None
    ) -> int:
        if self.in_transaction:
            return await self._run_batch(sql, arg_sets, timeout)
        # Outside a caller transaction the batch is still applied all-or-nothing.
        async with self.raw.transaction():
            return await self._run_batch(sql, arg_sets, timeout)

    async def _begin(self, isolation_level: IsolationLevel) -> None:
        self._transaction = self.raw.transaction(isolation=isolation_level.value)
        await self._transaction.start()

    async def _commit(self) -> None:
        transaction, self._transaction = self._transaction, None
        await transaction.commit()

    async def _rollback(self) -> None:
        transaction, self._transaction = self._transaction, None
        await transaction.rollback()

    def _translate_error(self, exc: Exception) -> DataAccessError | None:
        if isinstance(exc, asyncpg.exceptions.IntegrityConstraintViolationError):
            return ConstraintViolationError(
                str(exc),
                details={
                    "sqlstate": exc.sqlstate,
                    "constraint": getattr(exc, "constraint_name", None),
                },
            )
        if isinstance(exc, (asyncpg.exceptions.PostgresConnectionError, OSError)):
            return DatabaseConnectionError(str(exc), details={"driver": self.driver})
        if isinstance(exc, asyncpg.PostgresError):
            return QueryError(str(exc), details={"sqlstate": exc.sqlstate})
        if isinstance(exc, (asyncpg.InterfaceError, TypeError, ValueError)):
            return QueryError(str(exc))
        return None


class PostgresConnectionFactory(ConnectionFactory):
    """
    Accepts postgres:// and postgresql:// URLs. `sslmode` is stripped from
    the query string before it reaches asyncpg.
    """

    def _create(self) -> PostgresConnection:
        return PostgresConnection(
            _sanitize_database_url(self.connection_string),
            command_timeout=self.command_timeout,
            connect_timeout=self.connect_timeout,
        )
