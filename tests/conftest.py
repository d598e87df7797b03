"""
Pytest configuration for activerow.

Provides fixtures for:
- A spy execution engine that records commands and replays scripted replies
- Settings override for integration tests
- Database connection management and a scratch `users` table
"""

from __future__ import annotations

import os
from collections import deque
from typing import Any, Deque, Dict, Generator, List

import psycopg
import pytest

from activerow.config import Settings
from activerow.domain.commands import Command
from activerow.domain.models import Record


class SpyEngine:
    """
    ExecutionEngine double.

    Replies are consumed in order; a reply that is an exception instance is
    raised instead of returned.
    """

    def __init__(self, *replies: Any) -> None:
        self.commands: List[Command] = []
        self.replies: Deque[Any] = deque(replies)
        self.columns: Dict[str, List[str]] = {}

    def reply(self, *replies: Any) -> "SpyEngine":
        self.replies.extend(replies)
        return self

    def execute(self, command: Command) -> Any:
        self.commands.append(command)
        if not self.replies:
            raise AssertionError(f"Unexpected command: {command.render()}")
        outcome = self.replies.popleft()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def describe(self, table: str, connection: Any = 1) -> List[str]:
        self.commands.append(("describe", table, connection))  # type: ignore[arg-type]
        return list(self.columns[table])


@pytest.fixture()
def engine() -> SpyEngine:
    return SpyEngine()


@pytest.fixture()
def users(engine: SpyEngine) -> Record:
    """Record for `users` keyed by `id`, bound to the default connection."""
    return Record(["id", "name", "email"], "users", "id", 1, {}, " WHERE id = %(id)s", engine=engine)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "activerow"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;")
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped autocommit connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture()
def users_table(db_connection: psycopg.Connection) -> Generator[str, None, None]:
    """
    Create a fresh `activerow_users` table for one test and drop it afterwards.
    """
    db_connection.execute("DROP TABLE IF EXISTS activerow_users;")
    db_connection.execute(
        """
        CREATE TABLE activerow_users (
            id BIGSERIAL PRIMARY KEY,
            name TEXT,
            email TEXT UNIQUE
        );
        """
    )
    yield "activerow_users"
    db_connection.execute("DROP TABLE IF EXISTS activerow_users;")


@pytest.fixture()
def tags_table(db_connection: psycopg.Connection) -> Generator[str, None, None]:
    """
    Create a fresh `activerow_tags` table whose text key has no sequence behind it.
    """
    db_connection.execute("DROP TABLE IF EXISTS activerow_tags;")
    db_connection.execute(
        """
        CREATE TABLE activerow_tags (
            slug TEXT PRIMARY KEY DEFAULT md5(random()::text),
            name TEXT
        );
        """
    )
    yield "activerow_tags"
    db_connection.execute("DROP TABLE IF EXISTS activerow_tags;")
