"""
Connection and connection-factory abstractions.

A factory turns a connection string into new, unopened `Connection` objects.
It never caches or reuses them; pooling, if any, is the driver's business.

A `Connection` owns exactly one driver connection between `open()` and
`close()`. It compiles named parameters into the driver's placeholder style,
applies the default command timeout, and translates driver exceptions into
`core.errors` types. Driver subclasses only implement the underscore hooks.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Sequence

from .errors import (
    ConfigurationError,
    DataAccessError,
    DatabaseConnectionError,
    QueryTimeoutError,
    TransactionError,
)
from .sql import ParamStyle, QueryRequest, compile_statement, normalize_params

logger = logging.getLogger(__name__)


class IsolationLevel(str, enum.Enum):
    READ_UNCOMMITTED = "read_uncommitted"
    READ_COMMITTED = "read_committed"
    REPEATABLE_READ = "repeatable_read"
    SERIALIZABLE = "serializable"


class Connection(ABC):
    paramstyle: ParamStyle = "qmark"
    driver: str = "generic"

    def __init__(self, *, command_timeout: float | None = None):
        self.command_timeout = command_timeout
        self._is_open = False
        self._in_transaction = False

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    @property
    @abstractmethod
    def raw(self) -> Any:
        """The underlying driver connection, for work the executor does not cover."""

    # -- driver hooks ---------------------------------------------------

    @abstractmethod
    async def _open(self) -> None: ...

    @abstractmethod
    async def _close(self) -> None: ...

    @abstractmethod
    async def _fetch(
        self, sql: str, args: Sequence[Any], timeout: float | None
    ) -> tuple[list[str], list[tuple[Any, ...]]]: ...

    @abstractmethod
    async def _execute(self, sql: str, args: Sequence[Any], timeout: float | None) -> int: ...

    @abstractmethod
    async def _execute_many(
        self, sql: str, arg_sets: list[Sequence[Any]], timeout: float | None
    ) -> int: ...

    @abstractmethod
    async def _begin(self, isolation_level: IsolationLevel) -> None: ...

    @abstractmethod
    async def _commit(self) -> None: ...

    @abstractmethod
    async def _rollback(self) -> None: ...

    @abstractmethod
    def _translate_error(self, exc: Exception) -> DataAccessError | None:
        """Map a driver exception to a data-access error, or None to re-raise it as is."""

    # -- lifecycle ------------------------------------------------------

    async def open(self) -> None:
        if self._is_open:
            return None
        try:
            await self._open()
        except Exception as exc:
            logger.warning("db_connect_failed driver=%s error=%s", self.driver, exc)
            raise DatabaseConnectionError(
                f"Failed to open {self.driver} connection: {exc}",
                details={"driver": self.driver},
            ) from exc
        self._is_open = True
        logger.debug("db_connection_opened driver=%s", self.driver)

    async def close(self) -> None:
        if not self._is_open:
            return None
        self._is_open = False
        self._in_transaction = False
        try:
            await self._close()
        except Exception:
            # A failing close must not hide the error of the operation that used the connection.
            logger.warning("db_connection_close_failed driver=%s", self.driver, exc_info=True)
        else:
            logger.debug("db_connection_closed driver=%s", self.driver)

    async def __aenter__(self) -> Connection:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # -- statements -----------------------------------------------------

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise DatabaseConnectionError("Connection is not open.", details={"driver": self.driver})

    def _timeout(self, request: QueryRequest) -> float | None:
        return request.timeout if request.timeout is not None else self.command_timeout

    @asynccontextmanager
    async def _translated(self, sql: str) -> AsyncIterator[None]:
        try:
            yield
        except DataAccessError:
            raise
        except (TimeoutError, asyncio.TimeoutError) as exc:
            raise QueryTimeoutError(
                "Statement exceeded its command timeout.",
                details={"sql": sql},
            ) from exc
        except Exception as exc:
            translated = self._translate_error(exc)
            if translated is None:
                raise
            translated.details.setdefault("sql", sql)
            raise translated from exc

    async def fetch_table(self, request: QueryRequest) -> tuple[list[str], list[tuple[Any, ...]]]:
        self._ensure_open()
        statement = compile_statement(request.sql, self.paramstyle)
        args = statement.bind(request.params)
        logger.debug("db_fetch driver=%s sql=%s", self.driver, statement.text)
        async with self._translated(request.sql):
            return await self._fetch(statement.text, args, self._timeout(request))

    async def fetch(self, request: QueryRequest) -> list[dict[str, Any]]:
        columns, rows = await self.fetch_table(request)
        return [dict(zip(columns, row)) for row in rows]

    async def execute(self, request: QueryRequest) -> int:
        self._ensure_open()
        statement = compile_statement(request.sql, self.paramstyle)
        args = statement.bind(request.params)
        logger.debug("db_execute driver=%s sql=%s", self.driver, statement.text)
        async with self._translated(request.sql):
            return await self._execute(statement.text, args, self._timeout(request))

    async def execute_many(self, request: QueryRequest, param_sets: Iterable[Any]) -> int:
        self._ensure_open()
        statement = compile_statement(request.sql, self.paramstyle)
        arg_sets = [statement.bind(normalize_params(params)) for params in param_sets]
        if not arg_sets:
            return 0
        logger.debug(
            "db_execute_many driver=%s sql=%s sets=%s", self.driver, statement.text, len(arg_sets)
        )
        async with self._translated(request.sql):
            return await self._execute_many(statement.text, arg_sets, self._timeout(request))

    # -- transactions ---------------------------------------------------

    async def begin(self, isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED) -> None:
        self._ensure_open()
        if self._in_transaction:
            raise TransactionError("A transaction is already active on this connection.")
        try:
            await self._begin(isolation_level)
        except Exception as exc:
            raise TransactionError(
                f"Failed to begin transaction: {exc}",
                details={"isolation_level": isolation_level.value},
            ) from exc
        self._in_transaction = True

    async def commit(self) -> None:
        self._ensure_open()
        if not self._in_transaction:
            raise TransactionError("No active transaction to commit.")
        self._in_transaction = False
        try:
            await self._commit()
        except Exception as exc:
            raise TransactionError(f"Failed to commit transaction: {exc}") from exc

    async def rollback(self) -> None:
        self._ensure_open()
        if not self._in_transaction:
            raise TransactionError("No active transaction to roll back.")
        self._in_transaction = False
        try:
            await self._rollback()
        except Exception as exc:
            raise TransactionError(f"Failed to roll back transaction: {exc}") from exc


class ConnectionFactory(ABC):
    """
    Produces new, unopened connections from a connection string.
    Safe to share and to call concurrently: it holds no mutable state.
    """

    def __init__(
        self,
        connection_string: str,
        *,
        command_timeout: float | None = None,
        connect_timeout: float = 10.0,
    ):
        self._connection_string = (connection_string or "").strip()
        self.command_timeout = command_timeout
        self.connect_timeout = connect_timeout

    @property
    def connection_string(self) -> str:
        return self._connection_string

    def create(self) -> Connection:
        if not self._connection_string:
            raise ConfigurationError(
                f"{type(self).__name__} has no connection string configured."
            )
        return self._create()

    @abstractmethod
    def _create(self) -> Connection: ...
