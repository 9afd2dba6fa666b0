"""Fixtures for API tests: the FastAPI app over a fresh SQLite file."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from core.executor import QueryExecutor
from core.sqlite import SqliteConnectionFactory

from tests.support import create_schema


@pytest.fixture
def direct_executor(database_url):
    """Executor on the same database as the app, for setup and assertions."""
    return QueryExecutor(SqliteConnectionFactory(database_url))


@pytest.fixture
def run(direct_executor):
    """Run a coroutine to completion from a synchronous test."""

    def _run(awaitable):
        return asyncio.run(awaitable)

    _run(create_schema(direct_executor))
    return _run


@pytest.fixture
def client(monkeypatch, database_url, run):
    monkeypatch.setenv("DATABASE_URL", database_url)
    import main

    with TestClient(main.app) as test_client:
        yield test_client
