"""
QueryExecutor: the entry point repositories use for database work.

Every call creates its own connection from the factory, opens it, uses it
and closes it before returning, on success and on failure alike. Nothing is
shared between calls, so calls may run concurrently; calls issued
separately have no ordering guarantee relative to each other.

    executor = QueryExecutor(SqliteConnectionFactory("sqlite:///app.db"))

    student = await executor.query_single(
        "SELECT * FROM students WHERE student_id = :id", {"id": 7}, into=Student
    )
    total = await executor.execute_scalar("SELECT COUNT(*) FROM students", into=int)

    async def enroll(tx: TransactionExecutor) -> int:
        new_id = await tx.execute_scalar(
            "INSERT INTO students (student_number, name) VALUES (:n, :m) RETURNING student_id",
            {"n": 1001, "m": "Ada"},
            into=int,
        )
        await tx.execute("INSERT INTO logs (message) VALUES (:msg)", {"msg": "enrolled"})
        return new_id

    new_id = await executor.run_in_transaction(enroll)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from .connection import Connection, ConnectionFactory, IsolationLevel
from .errors import ConfigurationError
from .operations import StatementOperations
from .results import MultiResultCursor, Table
from .sql import QueryRequest, as_request, split_statements
from .transaction import TransactionExecutor, run_in_transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryExecutor(StatementOperations):
    def __init__(self, factory: ConnectionFactory):
        if factory is None:
            raise ConfigurationError("QueryExecutor requires a connection factory.")
        self._factory = factory

    @property
    def factory(self) -> ConnectionFactory:
        return self._factory

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Connection]:
        connection = self._factory.create()
        await connection.open()
        try:
            yield connection
        finally:
            await connection.close()

    async def query_as_table(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        timeout: float | None = None,
    ) -> Table:
        request = as_request(sql, params, timeout)
        async with self._connection() as connection:
            columns, rows = await connection.fetch_table(request)
        return Table(columns=tuple(columns), rows=tuple(rows))

    async def query_multiple(
        self,
        sql: str | QueryRequest,
        reader: Callable[[MultiResultCursor], Awaitable[T]],
        params: Any = None,
        *,
        timeout: float | None = None,
    ) -> T:
        """
        Run a multi-statement query and let `reader` pull each result set in
        order. The connection stays open until `reader` returns.

            async def read(cursor):
                count = await cursor.read_first(int)
                latest = await cursor.read(Student)
                return count, latest

            count, latest = await executor.query_multiple(
                "SELECT COUNT(*) FROM students; SELECT * FROM students ORDER BY student_id DESC LIMIT 5",
                read,
            )
        """
        request = as_request(sql, params, timeout)
        statements = split_statements(request.sql)
        async with self._connection() as connection:
            cursor = MultiResultCursor(connection, statements, request.params, request.timeout)
            try:
                return await reader(cursor)
            finally:
                cursor.close()

    async def with_connection(self, operation: Callable[[Connection], Awaitable[T]]) -> T:
        """
        Escape hatch: run `operation` with an open connection (its `raw`
        attribute is the driver connection). The connection is closed afterwards.
        """
        async with self._connection() as connection:
            return await operation(connection)

    async def test_connection(self) -> bool:
        """
        Open a connection and run `SELECT 1`. Returns False instead of raising,
        for health checks.
        """
        try:
            async with self._connection() as connection:
                await connection.fetch(QueryRequest("SELECT 1"))
        except Exception as exc:
            logger.warning("db_health_check_failed error=%s", exc)
            return False
        return True

    async def run_in_transaction(
        self,
        unit_of_work: Callable[[TransactionExecutor], Awaitable[T]],
        isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED,
    ) -> T:
        """
        Run `unit_of_work` inside one transaction: commit when it returns,
        roll back and re-raise its exception when it fails. Returns whatever
        the unit of work returns.
        """
        return await run_in_transaction(self._factory, unit_of_work, isolation_level)
