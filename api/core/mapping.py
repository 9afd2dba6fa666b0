"""
Row mapping.

Every typed query takes an `into=` argument that picks how a row (a dict of
column name -> value) becomes a Python value:

- None                 -> the row dict itself
- int, str, float, ... -> the first column, converted to that type
- pydantic model class -> Model.model_validate(row)
- dataclass            -> DataClass(**matching columns)
- any other callable   -> callable(row)

Nothing is discovered by introspecting result metadata; the caller states
the target type on every call.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, TypeVar
from uuid import UUID

from pydantic import BaseModel, ValidationError

from .errors import QueryError

T = TypeVar("T")

Row = dict[str, Any]
RowMapper = Callable[[Row], Any]

SCALAR_TYPES: tuple[type, ...] = (int, float, str, bool, Decimal, datetime, date, UUID, bytes)


def _type_name(target: Any) -> str:
    return getattr(target, "__name__", repr(target))


def convert_scalar(value: Any, into: type[T]) -> T:
    """
    Convert a single database value into `into`. NULL handling is the
    caller's job; `value` is expected to be non-None here.
    """
    if isinstance(value, into) and not (into is int and isinstance(value, bool)):
        return value
    try:
        if into is bool:
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in ("1", "true", "t", "yes", "y"):
                    return True  # type: ignore[return-value]
                if lowered in ("0", "false", "f", "no", "n"):
                    return False  # type: ignore[return-value]
                raise ValueError(f"not a boolean: {value!r}")
            return bool(value)  # type: ignore[return-value]
        if into is int:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(f"would truncate {value!r}")
            if isinstance(value, Decimal) and value != value.to_integral_value():
                raise ValueError(f"would truncate {value!r}")
            return int(value)  # type: ignore[return-value]
        if into is Decimal:
            return Decimal(str(value))  # type: ignore[return-value]
        if into is datetime and isinstance(value, str):
            return datetime.fromisoformat(value)  # type: ignore[return-value]
        if into is date and isinstance(value, str):
            return date.fromisoformat(value)  # type: ignore[return-value]
        if into is UUID and isinstance(value, (str, bytes)):
            return (UUID(value) if isinstance(value, str) else UUID(bytes=value))  # type: ignore[return-value]
        if into is bytes and isinstance(value, (bytearray, memoryview)):
            return bytes(value)  # type: ignore[return-value]
        if into is str:
            return str(value)  # type: ignore[return-value]
        return into(value)  # type: ignore[call-arg]
    except (TypeError, ValueError, InvalidOperation) as exc:
        raise QueryError(
            f"Cannot convert {type(value).__name__} value {value!r} to {_type_name(into)}.",
            details={"target": _type_name(into)},
        ) from exc


def first_value(row: Row) -> Any:
    for value in row.values():
        return value
    return None


def _dataclass_mapper(target: type) -> RowMapper:
    names = {f.name for f in dataclasses.fields(target) if f.init}

    def _map(row: Row) -> Any:
        return target(**{k: v for k, v in row.items() if k in names})

    return _map


def row_mapper(into: Any = None) -> RowMapper:
    if into is None:
        return dict
    if isinstance(into, type) and into in SCALAR_TYPES:
        return lambda row: None if first_value(row) is None else convert_scalar(first_value(row), into)
    if isinstance(into, type) and issubclass(into, BaseModel):
        return into.model_validate
    if isinstance(into, type) and dataclasses.is_dataclass(into):
        return _dataclass_mapper(into)
    if callable(into):
        return into
    raise QueryError(f"Cannot map rows into {into!r}: not a type or callable.")


def map_rows(rows: list[Row], into: Any = None) -> list[Any]:
    mapper = row_mapper(into)
    try:
        return [mapper(row) for row in rows]
    except QueryError:
        raise
    except (ValidationError, TypeError, ValueError, KeyError) as exc:
        raise QueryError(
            f"Cannot map row into {_type_name(into)}: {exc}",
            details={"target": _type_name(into)},
        ) from exc


def map_row(row: Row | None, into: Any = None) -> Any:
    if row is None:
        return None
    return map_rows([row], into)[0]
