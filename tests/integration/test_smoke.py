"""
Integration tests for activerow records.

These tests run against a real PostgreSQL instance and verify that records
round-trip through the PostgreSQL engine:
1. add() inserts and picks up the generated key
2. load()/save()/delete() touch exactly one row
3. ignore_errors suppresses constraint violations

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from activerow.domain.errors import EngineError, MissingKeyError
from activerow.domain.factory import model
from activerow.infrastructure.engine import PostgresEngine

COLUMNS = ["id", "name", "email"]
SEED_KEY = 1

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and reachable Postgres",
)


@pytest.fixture()
def pg_engine(test_dsn: str, db_connection_available: bool):
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
    pool = ConnectionPool(conninfo=test_dsn, min_size=1, max_size=2, open=True)
    try:
        yield PostgresEngine(pool_factory=lambda connection: pool, statement_timeout_ms=5000)
    finally:
        pool.close()


@pytest.fixture()
def single_session_engine(test_dsn: str, db_connection_available: bool):
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
    pool = ConnectionPool(conninfo=test_dsn, min_size=1, max_size=1, open=True)
    try:
        yield PostgresEngine(pool_factory=lambda connection: pool, statement_timeout_ms=5000)
    finally:
        pool.close()


def _count(conn: psycopg.Connection, table: str) -> int:
    return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


class TestRecordLifecycle:
    def test_add_load_save_delete(self, pg_engine, users_table, db_connection) -> None:
        user = model(users_table, columns=COLUMNS, id=SEED_KEY, engine=pg_engine)
        user.name = "Ada"
        user.email = "ada@example.com"

        assert user.add() is True
        new_id = user.id
        assert new_id >= 1

        fresh = model(users_table, columns=COLUMNS, engine=pg_engine)
        assert fresh.load(new_id) is True
        assert fresh.get_data() == {"id": new_id, "name": "Ada", "email": "ada@example.com"}
        assert fresh.is_record() is True

        fresh.name = "Ada Lovelace"
        assert fresh.save() is True
        row = db_connection.execute(
            f"SELECT name FROM {users_table} WHERE id = %s", (new_id,)
        ).fetchone()
        assert row[0] == "Ada Lovelace"

        assert fresh.delete() is True
        assert fresh.is_record() is False
        assert fresh.load() is False
        assert fresh.is_loaded() is False

    def test_add_reports_key_of_inserted_row_on_a_reused_session(
        self, single_session_engine, users_table, tags_table, db_connection
    ) -> None:
        user = model(users_table, columns=COLUMNS, id=SEED_KEY, engine=single_session_engine)
        user.name = "Ada"
        assert user.add() is True

        tag = model(tags_table, columns=["slug", "name"], key="slug", id="seed", engine=single_session_engine)
        tag.name = "python"
        assert tag.add() is True

        row = db_connection.execute(f"SELECT slug FROM {tags_table}").fetchone()
        assert tag.slug == row[0]
        assert tag.load() is True
        assert tag.name == "python"

    def test_columns_are_discovered(self, pg_engine, users_table) -> None:
        user = model(users_table, engine=pg_engine)

        assert user.get_columns() == COLUMNS

    def test_save_and_delete_touch_a_single_row(self, pg_engine, users_table, db_connection) -> None:
        db_connection.execute(
            f"INSERT INTO {users_table} (name, email) VALUES ('a', 'a@x'), ('b', 'b@x')"
        )
        user = model(
            users_table,
            columns=COLUMNS,
            where="WHERE id > %(id)s",
            id=0,
            engine=pg_engine,
        )

        assert user.delete() is True
        assert _count(db_connection, users_table) == 1

    def test_missing_key_never_reaches_database(self, pg_engine, users_table) -> None:
        user = model(users_table, columns=COLUMNS, engine=pg_engine)

        with pytest.raises(MissingKeyError):
            user.save()


class TestErrorHandling:
    def test_constraint_violation_raises_engine_error(self, pg_engine, users_table) -> None:
        first = model(users_table, columns=COLUMNS, id=SEED_KEY, engine=pg_engine)
        first.email = "dup@example.com"
        assert first.add() is True

        second = model(users_table, columns=COLUMNS, id=SEED_KEY, engine=pg_engine)
        second.email = "dup@example.com"
        with pytest.raises(EngineError):
            second.add()

    def test_ignore_errors_reports_false(self, pg_engine, users_table, db_connection) -> None:
        first = model(users_table, columns=COLUMNS, id=SEED_KEY, engine=pg_engine)
        first.email = "dup@example.com"
        assert first.add() is True

        second = model(users_table, columns=COLUMNS, id=SEED_KEY, engine=pg_engine)
        second.email = "dup@example.com"
        assert second.add(ignore_errors=True) is False
        assert _count(db_connection, users_table) == 1
