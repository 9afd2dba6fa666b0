"""Shared test helpers: schema setup and a scripted in-memory connection."""

from __future__ import annotations

from typing import Any, Sequence

from core.connection import Connection, ConnectionFactory, IsolationLevel
from core.errors import DataAccessError, QueryError

SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS students (
        student_id INTEGER PRIMARY KEY AUTOINCREMENT,
        student_number INTEGER NOT NULL UNIQUE,
        name TEXT,
        title TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS logs (
        log_id INTEGER PRIMARY KEY AUTOINCREMENT,
        student_id INTEGER REFERENCES students(student_id),
        message TEXT NOT NULL,
        created_at TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL,
        email TEXT NOT NULL UNIQUE,
        date_registered TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
    )
    """,
]


async def create_schema(executor) -> None:
    for statement in SCHEMA:
        await executor.execute(statement)


class FakeConnection(Connection):
    """Records every driver call; failures are switched on through the factory."""

    driver = "fake"
    paramstyle = "qmark"

    def __init__(self, factory: FakeFactory):
        super().__init__(command_timeout=factory.command_timeout)
        self.factory = factory
        self.events: list[Any] = []

    @property
    def raw(self) -> FakeConnection:
        return self

    def count(self, name: str) -> int:
        return sum(1 for e in self.events if e == name or (isinstance(e, tuple) and e[0] == name))

    async def _open(self) -> None:
        if self.factory.fail_open:
            raise OSError("connection refused")
        self.events.append("open")

    async def _close(self) -> None:
        self.events.append("close")

    async def _fetch(
        self, sql: str, args: Sequence[Any], timeout: float | None
    ) -> tuple[list[str], list[tuple[Any, ...]]]:
        self.events.append(("fetch", sql, tuple(args), timeout))
        if self.factory.fail_statement is not None:
            raise self.factory.fail_statement
        columns, rows = self.factory.result
        return list(columns), list(rows)

    async def _execute(self, sql: str, args: Sequence[Any], timeout: float | None) -> int:
        self.events.append(("execute", sql, tuple(args), timeout))
        if self.factory.fail_statement is not None:
            raise self.factory.fail_statement
        return 1

    async def _execute_many(
        self, sql: str, arg_sets: list[Sequence[Any]], timeout: float | None
    ) -> int:
        self.events.append(("execute_many", sql, [tuple(a) for a in arg_sets], timeout))
        return len(arg_sets)

    async def _begin(self, isolation_level: IsolationLevel) -> None:
        self.events.append(("begin", isolation_level))

    async def _commit(self) -> None:
        if self.factory.fail_commit:
            raise RuntimeError("commit lost")
        self.events.append("commit")

    async def _rollback(self) -> None:
        if self.factory.fail_rollback:
            raise RuntimeError("rollback lost")
        self.events.append("rollback")

    def _translate_error(self, exc: Exception) -> DataAccessError | None:
        if isinstance(exc, LookupError):
            return QueryError(str(exc))
        return None


class FakeFactory(ConnectionFactory):
    def __init__(self, *, command_timeout: float | None = None):
        super().__init__("fake://db", command_timeout=command_timeout)
        self.connections: list[FakeConnection] = []
        self.result: tuple[list[str], list[tuple[Any, ...]]] = ([], [])
        self.fail_open = False
        self.fail_commit = False
        self.fail_rollback = False
        self.fail_statement: Exception | None = None

    def _create(self) -> FakeConnection:
        connection = FakeConnection(self)
        self.connections.append(connection)
        return connection
