"""
Untyped result shapes: the tabular grid and the multi-result-set cursor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator, Mapping

from .errors import CardinalityError, QueryError
from .mapping import map_row, map_rows
from .sql import QueryRequest

if TYPE_CHECKING:
    from .connection import Connection


@dataclass(frozen=True)
class Table:
    """
    A loosely typed row/column grid. Iterating yields each row as a dict.
    """

    columns: tuple[str, ...]
    rows: tuple[tuple[Any, ...], ...]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        for row in self.rows:
            yield dict(zip(self.columns, row))

    @property
    def is_empty(self) -> bool:
        return not self.rows

    def _index(self, name: str) -> int:
        try:
            return self.columns.index(name)
        except ValueError:
            raise KeyError(name) from None

    def column(self, name: str) -> list[Any]:
        index = self._index(name)
        return [row[index] for row in self.rows]

    def cell(self, row_index: int, column: str | int) -> Any:
        index = column if isinstance(column, int) else self._index(column)
        return self.rows[row_index][index]

    def to_dicts(self) -> list[dict[str, Any]]:
        return list(self)


class MultiResultCursor:
    """
    Sequential reader over the result sets of a multi-statement query.

    Each `read*` call runs the next statement on the shared connection and
    returns its rows; result sets must be consumed in order. The cursor is
    only valid inside the reader function passed to `query_multiple`.
    """

    def __init__(
        self,
        connection: Connection,
        statements: list[str],
        params: Mapping[str, Any] | None = None,
        timeout: float | None = None,
    ):
        self._connection = connection
        self._statements = list(statements)
        self._params = params
        self._timeout = timeout
        self._position = 0
        self._closed = False

    @property
    def has_more(self) -> bool:
        return not self._closed and self._position < len(self._statements)

    @property
    def remaining(self) -> int:
        return 0 if self._closed else len(self._statements) - self._position

    def close(self) -> None:
        self._closed = True

    async def _next_rows(self) -> list[dict[str, Any]]:
        if self._closed:
            raise QueryError("Multi-result cursor is closed; read result sets inside the reader.")
        if self._position >= len(self._statements):
            raise QueryError(
                f"No more result sets: all {len(self._statements)} have been read."
            )
        statement = self._statements[self._position]
        self._position += 1
        return await self._connection.fetch(QueryRequest(statement, self._params, self._timeout))

    async def read(self, into: Any = None) -> list[Any]:
        return map_rows(await self._next_rows(), into)

    async def read_first(self, into: Any = None) -> Any:
        rows = await self._next_rows()
        return map_row(rows[0] if rows else None, into)

    async def read_single(self, into: Any = None) -> Any:
        rows = await self._next_rows()
        if len(rows) > 1:
            raise CardinalityError(
                f"Expected at most one row, got {len(rows)}.",
                details={"row_count": len(rows)},
            )
        return map_row(rows[0] if rows else None, into)
