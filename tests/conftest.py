"""
Shared pytest fixtures and configuration for tagmap tests.

This module provides:
- Settings / dialect isolation between tests
- In-memory SQLite connections with the test tables created
- Deterministic identifiers and timestamps

Usage:
    Fixtures are auto-discovered by pytest. Use them as function arguments.

    def test_insert(sqlite_conn):
        ...
"""

import sqlite3
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path
from uuid import UUID

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session

from tagmap.core.dialect import Dialect, MySQLDialect, SQLiteDialect
from tagmap.core.orm.session import create_tagmap_engine, tagmap_session_factory
from tagmap.core.settings import reset_settings


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests: engine/bridge tests touch sqlite, the rest are unit tests."""
    for item in items:
        test_path = Path(item.fspath).name
        if test_path in ("test_engine.py", "test_orm_session.py"):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop cached settings and any TAGMAP_* variables around each test."""
    import os

    for key in list(os.environ):
        if key.startswith("TAGMAP_"):
            monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


# =============================================================================
# Dialects
# =============================================================================


@pytest.fixture
def mysql() -> Dialect:
    return MySQLDialect()


@pytest.fixture
def sqlite_dialect() -> Dialect:
    return SQLiteDialect()


# =============================================================================
# Database
# =============================================================================


# Aware datetimes are stored as ISO 8601 text.
sqlite3.register_adapter(datetime, datetime.isoformat)


USERS_DDL = """
CREATE TABLE users (
    id TEXT PRIMARY KEY,
    identity TEXT UNIQUE,
    name TEXT NOT NULL,
    phone TEXT,
    active INTEGER,
    ctime TEXT,
    mtime TEXT
)
"""

POSTS_DDL = """
CREATE TABLE posts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id),
    title TEXT NOT NULL,
    description TEXT,
    ctime TEXT,
    mtime TEXT
)
"""


@pytest.fixture
def sqlite_conn() -> Generator[sqlite3.Connection, None, None]:
    """In-memory SQLite connection with ``users`` and ``posts`` tables."""
    conn = sqlite3.connect(":memory:")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.execute(USERS_DDL)
    conn.execute(POSTS_DDL)
    conn.commit()
    yield conn
    conn.close()


@pytest.fixture
def sa_session() -> Generator[Session, None, None]:
    """SQLAlchemy session on an in-memory SQLite engine with the test tables."""
    engine = create_tagmap_engine("sqlite://")
    with engine.begin() as conn:
        conn.execute(text(USERS_DDL))
        conn.execute(text(POSTS_DDL))
    session = tagmap_session_factory(engine)()
    yield session
    session.close()
    engine.dispose()


# =============================================================================
# Deterministic values
# =============================================================================


@pytest.fixture
def fixed_uuid() -> UUID:
    return UUID("12345678-1234-5678-1234-567812345678")


@pytest.fixture
def fixed_time() -> datetime:
    return datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
