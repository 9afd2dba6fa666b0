"""Pytest configuration for test suite."""

import sys
from pathlib import Path

# Feature packages live in api/ and import each other as top-level packages.
project_root = Path(__file__).parent.parent
api_dir = project_root / "api"

sys.path.insert(0, str(project_root))
sys.path.insert(0, str(api_dir))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from core import db  # noqa: E402
from core.executor import QueryExecutor  # noqa: E402
from core.sqlite import SqliteConnectionFactory  # noqa: E402

from tests.support import FakeFactory, create_schema  # noqa: E402


def pytest_configure(config):
    """Called after command line options have been parsed."""
    if str(api_dir) not in sys.path:
        sys.path.insert(0, str(api_dir))


@pytest.fixture
def database_url(tmp_path):
    """URL of a fresh SQLite file per test."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def sqlite_factory(database_url):
    return SqliteConnectionFactory(database_url)


@pytest_asyncio.fixture
async def executor(sqlite_factory):
    """QueryExecutor over a SQLite file with the students/logs/users schema."""
    executor = QueryExecutor(sqlite_factory)
    await create_schema(executor)
    return executor


@pytest.fixture
def fake_factory():
    return FakeFactory()


@pytest.fixture
def fake_executor(fake_factory):
    return QueryExecutor(fake_factory)


@pytest.fixture(autouse=True)
def reset_process_executor():
    """Never leak the process-wide executor between tests."""
    db.set_executor(None)
    yield
    db.set_executor(None)
