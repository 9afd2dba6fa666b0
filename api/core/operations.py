"""
The statement surface shared by `QueryExecutor` and `TransactionExecutor`.

Subclasses decide where the connection comes from (`_connection()`); the
result-shape rules live here once: single / first / many / scalar /
scalar-or-default / execute / batch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Any, Iterable

from .connection import Connection
from .errors import CardinalityError, QueryError
from .mapping import convert_scalar, first_value, map_row, map_rows
from .sql import QueryRequest, as_request


class StatementOperations(ABC):
    @abstractmethod
    def _connection(self) -> AbstractAsyncContextManager[Connection]:
        """Yield an open connection for the duration of one operation."""

    async def _fetch(self, request: QueryRequest) -> list[dict[str, Any]]:
        async with self._connection() as connection:
            return await connection.fetch(request)

    async def _scalar(self, request: QueryRequest) -> Any:
        rows = await self._fetch(request)
        return first_value(rows[0]) if rows else None

    async def query_single(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        into: Any = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Return the only matching row (mapped by `into`), or None for no rows.
        More than one row raises CardinalityError.
        """
        request = as_request(sql, params, timeout)
        rows = await self._fetch(request)
        if len(rows) > 1:
            raise CardinalityError(
                f"Expected at most one row, got {len(rows)}.",
                details={"row_count": len(rows), "sql": request.sql},
            )
        return map_row(rows[0] if rows else None, into)

    async def query_first(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        into: Any = None,
        timeout: float | None = None,
    ) -> Any:
        """Return the first row (mapped by `into`) or None. Extra rows are ignored."""
        rows = await self._fetch(as_request(sql, params, timeout))
        return map_row(rows[0] if rows else None, into)

    async def query_many(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        into: Any = None,
        timeout: float | None = None,
    ) -> list[Any]:
        rows = await self._fetch(as_request(sql, params, timeout))
        return map_rows(rows, into)

    async def execute(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        timeout: float | None = None,
    ) -> int:
        """Run a statement with side effects and return the affected row count."""
        request = as_request(sql, params, timeout)
        async with self._connection() as connection:
            return await connection.execute(request)

    async def execute_batch(
        self,
        sql: str | QueryRequest,
        param_sets: Iterable[Any],
        *,
        timeout: float | None = None,
    ) -> int:
        """
        Run one statement once per parameter set and return the total affected
        row count. Whether that is one round trip or several is up to the driver.

        Values come from `param_sets` only; a prebuilt request carrying its own
        params is rejected.
        """
        if isinstance(sql, QueryRequest) and sql.params is not None:
            raise QueryError(
                "execute_batch takes parameter values from param_sets; "
                "pass a QueryRequest without params.",
                details={"sql": sql.sql},
            )
        request = as_request(sql, None, timeout)
        param_sets = list(param_sets)
        async with self._connection() as connection:
            return await connection.execute_many(request, param_sets)

    async def execute_scalar(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        into: type | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Return the first column of the first row. With `into`, a NULL or empty
        result is a conversion failure (QueryError).
        """
        request = as_request(sql, params, timeout)
        value = await self._scalar(request)
        if into is None:
            return value
        if value is None:
            raise QueryError(
                f"Scalar query returned NULL; cannot convert to {into.__name__}.",
                details={"sql": request.sql},
            )
        return convert_scalar(value, into)

    async def execute_scalar_or_default(
        self,
        sql: str | QueryRequest,
        params: Any = None,
        *,
        into: type | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Like `execute_scalar`, but NULL or no row yields None instead of an error."""
        value = await self._scalar(as_request(sql, params, timeout))
        if value is None or into is None:
            return value
        return convert_scalar(value, into)
