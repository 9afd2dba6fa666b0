"""
Process-wide database wiring.

This module owns the QueryExecutor. FastAPI initializes it on startup and
drops it on shutdown (see `api/main.py`). Startup fails right away when the
connection string is missing; that is a configuration error, not something
to discover on the first query.

SQL parameter style:
- named placeholders everywhere: :name (see `core/sql.py`)
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from . import settings
from .connection import ConnectionFactory
from .errors import ConfigurationError
from .executor import QueryExecutor
from .postgres import PostgresConnectionFactory
from .sqlite import SqliteConnectionFactory

logger = logging.getLogger(__name__)

_executor: QueryExecutor | None = None

FACTORIES: dict[str, type[ConnectionFactory]] = {
    "postgres": PostgresConnectionFactory,
    "postgresql": PostgresConnectionFactory,
    "sqlite": SqliteConnectionFactory,
}


def create_connection_factory(
    url: str,
    *,
    command_timeout: float | None = None,
    connect_timeout: float = 10.0,
) -> ConnectionFactory:
    url = (url or "").strip()
    if not url:
        raise ConfigurationError("Connection string is empty.")
    scheme = urlsplit(url).scheme.lower()
    factory_cls = FACTORIES.get(scheme)
    if factory_cls is None:
        raise ConfigurationError(
            f"Unsupported database URL scheme: {scheme or '<none>'}.",
            details={"supported": sorted(FACTORIES)},
        )
    return factory_cls(url, command_timeout=command_timeout, connect_timeout=connect_timeout)


def init_executor(name: str = settings.DEFAULT_CONNECTION_NAME) -> QueryExecutor:
    global _executor
    if _executor is not None:
        return _executor
    factory = create_connection_factory(
        settings.connection_string(name),
        command_timeout=settings.command_timeout(),
        connect_timeout=settings.connect_timeout(),
    )
    _executor = QueryExecutor(factory)
    logger.info("db_executor_initialized connection=%s factory=%s", name, type(factory).__name__)
    return _executor


def close_executor() -> None:
    global _executor
    _executor = None


def set_executor(value: QueryExecutor | None) -> None:
    global _executor
    _executor = value


def executor() -> QueryExecutor:
    if _executor is None:
        raise ConfigurationError("Query executor is not initialized. Call init_executor() on startup.")
    return _executor
