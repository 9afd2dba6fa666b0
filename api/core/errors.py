"""
Data-access error taxonomy.

Driver exceptions never leak out of `core/`: each connection translates them
into one of these classes and chains the original (`raise ... from exc`).
"""

from __future__ import annotations

from typing import Any


class DataAccessError(Exception):
    """Base class for every error raised by the data-access layer."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(DataAccessError):
    """Missing or unusable configuration. Fatal at startup, never retried."""


class DatabaseConnectionError(DataAccessError):
    """A connection could not be opened (or was used while closed)."""


class QueryError(DataAccessError):
    """A statement failed: bad SQL, missing parameter, or type conversion."""


class ConstraintViolationError(QueryError):
    """The database rejected a statement because of an integrity constraint."""


class QueryTimeoutError(QueryError):
    """A statement did not finish within its command timeout."""


class CardinalityError(DataAccessError):
    """A single-row query matched more than one row."""


class TransactionError(DataAccessError):
    """Begin, commit or rollback failed, or a transaction was misused."""
