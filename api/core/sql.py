"""
Statement helpers: the immutable query request and named-parameter handling.

SQL parameter style:
- callers always write named placeholders: `WHERE id = :id`
- each connection compiles them to its driver style
  (asyncpg: $1, $2, ...; sqlite: ?, ?, ...)
- values are always bound by the driver, never formatted into the text

`::type` casts, array slices like `[1:2]` or `[lo:hi]`, and anything inside
string literals (including `E'...'` escapes and `$tag$...$tag$` bodies),
quoted identifiers or comments are left alone. A colon right after an
identifier, `]` or `)` never starts a parameter.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Literal, Mapping

from pydantic import BaseModel

from .errors import QueryError

ParamStyle = Literal["numeric", "qmark"]

_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_][A-Za-z0-9_]*)?\$")


def normalize_params(params: Any) -> dict[str, Any] | None:
    """
    Accept a mapping, a pydantic model or a dataclass instance and return a
    plain dict of parameter values.
    """
    if params is None:
        return None
    if isinstance(params, Mapping):
        return dict(params)
    if isinstance(params, BaseModel):
        return params.model_dump()
    if dataclasses.is_dataclass(params) and not isinstance(params, type):
        return {f.name: getattr(params, f.name) for f in dataclasses.fields(params)}
    raise QueryError(
        f"Unsupported parameter container: {type(params).__name__}. "
        "Pass a mapping, a pydantic model or a dataclass instance."
    )


@dataclass(frozen=True)
class QueryRequest:
    sql: str
    params: Mapping[str, Any] | None = None
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not (self.sql or "").strip():
            raise QueryError("SQL statement text is empty.")
        normalized = normalize_params(self.params)
        if normalized is not None:
            object.__setattr__(self, "params", MappingProxyType(normalized))
        if self.timeout is not None and self.timeout <= 0:
            raise QueryError(f"Command timeout must be positive, got {self.timeout!r}.")


def as_request(
    sql: str | QueryRequest,
    params: Any = None,
    timeout: float | None = None,
) -> QueryRequest:
    if isinstance(sql, QueryRequest):
        if params is None and timeout is None:
            return sql
        return QueryRequest(
            sql.sql,
            params if params is not None else sql.params,
            timeout if timeout is not None else sql.timeout,
        )
    return QueryRequest(sql, params, timeout)


@dataclass(frozen=True)
class CompiledStatement:
    text: str
    # Parameter names in bind order.
    names: tuple[str, ...] = field(default=())

    def bind(self, params: Mapping[str, Any] | None) -> list[Any]:
        params = params or {}
        missing = [name for name in dict.fromkeys(self.names) if name not in params]
        if missing:
            raise QueryError(
                f"Missing value for parameter(s): {', '.join(missing)}",
                details={"missing": missing},
            )
        return [params[name] for name in self.names]


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch in ("_", "$")


def _quoted_end(sql: str, i: int, quote: str, backslash_escapes: bool) -> int:
    """Index just past the literal or quoted identifier starting at sql[i]."""
    j, n = i + 1, len(sql)
    while j < n:
        if backslash_escapes and sql[j] == "\\":
            j += 2
            continue
        if sql[j] == quote:
            # Doubled quote is an escaped quote.
            if j + 1 < n and sql[j + 1] == quote:
                j += 2
                continue
            return j + 1
        j += 1
    return n


def _tokenize(sql: str) -> list[tuple[str, str]]:
    """
    Split SQL into ("text", chunk), ("param", name) and ("end", ";") tokens.
    """
    tokens: list[tuple[str, str]] = []
    buf: list[str] = []

    def flush() -> None:
        if buf:
            tokens.append(("text", "".join(buf)))
            buf.clear()

    i, n = 0, len(sql)
    while i < n:
        ch = sql[i]
        prev = sql[i - 1] if i > 0 else ""

        if ch in ("'", '"'):
            # E'...' strings take backslash escapes.
            escapes = (
                ch == "'"
                and prev in ("E", "e")
                and (i < 2 or not _is_ident_char(sql[i - 2]))
            )
            j = _quoted_end(sql, i, ch, escapes)
            buf.append(sql[i:j])
            i = j
            continue

        if ch == "$" and not _is_ident_char(prev):
            tag = _DOLLAR_TAG.match(sql, i)
            if tag is not None:
                close = sql.find(tag.group(), tag.end())
                j = n if close == -1 else close + len(tag.group())
                buf.append(sql[i:j])
                i = j
                continue

        if sql.startswith("--", i):
            j = sql.find("\n", i)
            j = n if j == -1 else j
            buf.append(sql[i:j])
            i = j
            continue

        if sql.startswith("/*", i):
            j = sql.find("*/", i + 2)
            j = n if j == -1 else j + 2
            buf.append(sql[i:j])
            i = j
            continue

        if ch == ":":
            if sql.startswith("::", i):
                buf.append("::")
                i += 2
                continue
            j = i + 1
            while j < n and (sql[j].isalnum() or sql[j] == "_"):
                j += 1
            # After an identifier, ] or ) the colon is a slice bound, not a parameter.
            is_param = (
                j > i + 1
                and not sql[i + 1].isdigit()
                and not _is_ident_char(prev)
                and prev not in ("]", ")")
            )
            if is_param:
                flush()
                tokens.append(("param", sql[i + 1 : j]))
                i = j
                continue
            buf.append(ch)
            i += 1
            continue

        if ch == ";":
            flush()
            tokens.append(("end", ";"))
            i += 1
            continue

        buf.append(ch)
        i += 1

    flush()
    return tokens


@lru_cache(maxsize=512)
def compile_statement(sql: str, paramstyle: ParamStyle) -> CompiledStatement:
    parts: list[str] = []
    names: list[str] = []
    positions: dict[str, int] = {}

    for kind, value in _tokenize(sql):
        if kind != "param":
            parts.append(value)
            continue
        if paramstyle == "numeric":
            # Postgres can reference the same $n twice.
            if value not in positions:
                names.append(value)
                positions[value] = len(names)
            parts.append(f"${positions[value]}")
        else:
            names.append(value)
            parts.append("?")

    return CompiledStatement("".join(parts), tuple(names))


def split_statements(sql: str) -> list[str]:
    """
    Split a multi-statement script on top-level semicolons.
    Placeholders are kept in named form so each piece can be compiled alone.
    """
    statements: list[str] = []
    current: list[str] = []
    for kind, value in _tokenize(sql):
        if kind == "end":
            statements.append("".join(current))
            current = []
        elif kind == "param":
            current.append(f":{value}")
        else:
            current.append(value)
    statements.append("".join(current))
    return [s.strip() for s in statements if s.strip()]
