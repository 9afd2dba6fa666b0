"""
Callback-scoped transactions.

`run_in_transaction(factory, unit_of_work)` opens a connection, begins a
transaction, hands the unit of work a `TransactionExecutor` bound to that
connection, then commits on success or rolls back and re-raises on failure.
The connection is closed exactly once whichever way it ends.

A `TransactionExecutor` is only valid while its unit of work is running.
Keeping a reference and calling it afterwards raises TransactionError.
It wraps one non-thread-safe connection: do not share it between
concurrently running tasks.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from .connection import Connection, ConnectionFactory, IsolationLevel
from .errors import TransactionError
from .operations import StatementOperations

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Set while a unit of work runs in the current task; nested transactions are not supported.
_active_transaction: ContextVar[bool] = ContextVar("active_transaction", default=False)


class TransactionExecutor(StatementOperations):
    """
    Statement surface bound to one open connection and one active transaction.
    Created by `run_in_transaction` only.
    """

    def __init__(self, connection: Connection, isolation_level: IsolationLevel):
        self._bound = connection
        self.isolation_level = isolation_level
        self._active = True

    @property
    def is_active(self) -> bool:
        return self._active

    def _expire(self) -> None:
        self._active = False

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Connection]:
        if not self._active:
            raise TransactionError(
                "TransactionExecutor used outside its unit of work; "
                "it is only valid until the callback returns."
            )
        yield self._bound


async def _rollback_after_failure(connection: Connection, original: BaseException) -> None:
    try:
        await connection.rollback()
    except Exception as rollback_exc:
        # The unit-of-work error stays the one the caller sees.
        logger.error(
            "transaction_rollback_failed original=%r error=%s",
            original,
            rollback_exc,
            exc_info=rollback_exc,
        )
        original.add_note(f"Rollback after this failure also failed: {rollback_exc!r}")
    else:
        logger.info("transaction_rolled_back reason=%s", type(original).__name__)


async def run_in_transaction(
    factory: ConnectionFactory,
    unit_of_work: Callable[[TransactionExecutor], Awaitable[T]],
    isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED,
) -> T:
    if _active_transaction.get():
        raise TransactionError("Nested transactions are not supported.")

    connection = factory.create()
    await connection.open()
    try:
        await connection.begin(isolation_level)
        logger.debug("transaction_started isolation=%s", isolation_level.value)

        executor = TransactionExecutor(connection, isolation_level)
        token = _active_transaction.set(True)
        try:
            result = await unit_of_work(executor)
        except BaseException as exc:
            executor._expire()
            await _rollback_after_failure(connection, exc)
            raise
        finally:
            executor._expire()
            _active_transaction.reset(token)

        try:
            await connection.commit()
        except TransactionError as exc:
            logger.error("transaction_commit_failed isolation=%s error=%s", isolation_level.value, exc)
            raise
        logger.debug("transaction_committed isolation=%s", isolation_level.value)
        return result
    finally:
        await connection.close()
