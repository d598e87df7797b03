"""
Execution engines: the collaborators that run Record commands.

`ExecutionEngine` is the structural contract a Record depends on.
`PostgresEngine` implements it on psycopg 3 connection pools:

- Insert/Update/Delete return the affected-row count.
- Select/Exists return a list of dict rows.
- LastInsertId returns the key produced by the calling thread's last
  successful insert on that connection selector, or None.

Errors raised by psycopg are wrapped into EngineError, unless the command
asked for `ignore_errors`, in which case they are logged and reported as
zero affected rows.
"""

from __future__ import annotations

import threading
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from activerow.config import get_settings
from activerow.domain.commands import Command, Delete, Exists, Insert, LastInsertId, Select, Update
from activerow.domain.errors import EngineError
from activerow.domain.query import DEFAULT_CONNECTION, ConnectionSelector, is_default_connection
from activerow.infrastructure.db_factory import apply_statement_timeout, get_pool
from activerow.utils.logging import get_logger

log = get_logger(__name__)

PoolFactory = Callable[[ConnectionSelector], ConnectionPool]


@runtime_checkable
class ExecutionEngine(Protocol):
    """
    Contract between a Record and whatever runs its commands.
    """

    def execute(self, command: Command) -> Any:
        """
        Run one command and return its outcome.

        Returns
        -------
        int | Any | list[dict]
            Affected-row count for writes, a scalar for LastInsertId, and a
            list of rows for Select/Exists.
        """
        ...

    def describe(
        self, table: str, connection: ConnectionSelector = DEFAULT_CONNECTION
    ) -> List[str]:
        """Return the ordered column names of `table`."""
        ...


def _table_identifier(table: str) -> sql.Identifier:
    # "schema.table" is quoted part by part.
    return sql.Identifier(*table.split("."))


def _slot(connection: ConnectionSelector) -> str:
    return "default" if is_default_connection(connection) else str(connection)


class PostgresEngine:
    """
    ExecutionEngine backed by one psycopg ConnectionPool per connection selector.
    """

    def __init__(
        self,
        pool_factory: Optional[PoolFactory] = None,
        statement_timeout_ms: Optional[int] = None,
    ) -> None:
        if statement_timeout_ms is None:
            statement_timeout_ms = get_settings().db_statement_timeout_ms
        self._pool_factory = pool_factory or get_pool
        self._statement_timeout_ms = statement_timeout_ms
        # Last insert ids are kept per thread and per selector.
        self._local = threading.local()

    # ------------------------------------------------------------------
    # ExecutionEngine
    # ------------------------------------------------------------------

    def execute(self, command: Command) -> Any:
        if isinstance(command, LastInsertId):
            return self._last_ids().get(_slot(command.connection))

        handlers = {
            Insert: self._insert,
            Update: self._update,
            Delete: self._delete,
            Select: self._select,
            Exists: self._exists,
        }
        handler = handlers.get(type(command))
        if handler is None:
            raise EngineError(f"Unsupported command {type(command).__name__}", command)

        try:
            return handler(command)
        except psycopg.Error as exc:
            if getattr(command, "ignore_errors", False):
                log.warning(
                    "Suppressed engine error",
                    extra={"command": command.render(), "error": str(exc)},
                )
                return 0
            raise EngineError(f"{command.render()}: {exc}", command) from exc

    def describe(
        self, table: str, connection: ConnectionSelector = DEFAULT_CONNECTION
    ) -> List[str]:
        schema, _, name = table.rpartition(".")
        query = (
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = {} AND table_name = %(table)s "
            "ORDER BY ordinal_position"
        )
        schema_sql = sql.SQL("%(schema)s") if schema else sql.SQL("current_schema()")
        statement = sql.SQL(query).format(schema_sql)
        try:
            rows = self._fetch(connection, statement, {"schema": schema, "table": name})
        except psycopg.Error as exc:
            raise EngineError(f"describe {table}: {exc}") from exc
        return [row["column_name"] for row in rows]

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    def _select(self, command: Select) -> List[Dict[str, Any]]:
        statement = sql.SQL("SELECT {} FROM {}").format(
            sql.SQL(", ").join(sql.Identifier(column) for column in command.columns),
            _table_identifier(command.table),
        ) + sql.SQL(command.where)
        return self._fetch(command.connection, statement, command.params)

    def _exists(self, command: Exists) -> List[Dict[str, Any]]:
        statement = (
            sql.SQL("SELECT EXISTS(SELECT 1 FROM {}").format(_table_identifier(command.table))
            + sql.SQL(command.where)
            + sql.SQL(") AS is_record")
        )
        return self._fetch(command.connection, statement, command.params)

    def _insert(self, command: Insert) -> int:
        table = _table_identifier(command.table)
        params = {f"_ins_{i}": value for i, value in enumerate(command.values.values())}
        if command.values:
            statement = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
                table,
                sql.SQL(", ").join(sql.Identifier(column) for column in command.values),
                sql.SQL(", ").join(sql.Placeholder(name) for name in params),
            )
        else:
            statement = sql.SQL("INSERT INTO {} DEFAULT VALUES").format(table)
        if command.ignore_errors:
            statement += sql.SQL(" ON CONFLICT DO NOTHING")
        if command.key:
            statement += sql.SQL(" RETURNING {}").format(sql.Identifier(command.key))

        pool = self._pool_factory(command.connection)
        with pool.connection() as conn:
            with conn.cursor() as cur:
                apply_statement_timeout(cur, self._statement_timeout_ms)
                cur.execute(statement, params)
                affected = cur.rowcount
                row = cur.fetchone() if command.key and affected > 0 else None
        if affected > 0:
            self._last_ids()[_slot(command.connection)] = row[0] if row else None
        return affected

    def _update(self, command: Update) -> int:
        if not command.values:
            return 0
        assignments = {
            f"_set_{i}": (column, value) for i, (column, value) in enumerate(command.values.items())
        }
        statement = (
            sql.SQL("UPDATE {} SET {} WHERE ctid = (SELECT ctid FROM {}").format(
                _table_identifier(command.table),
                sql.SQL(", ").join(
                    sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder(name))
                    for name, (column, _) in assignments.items()
                ),
                _table_identifier(command.table),
            )
            + sql.SQL(command.where)
            + sql.SQL(")")
        )
        params = dict(command.params)
        params.update((name, value) for name, (_, value) in assignments.items())
        return self._write(command.connection, statement, params)

    def _delete(self, command: Delete) -> int:
        statement = (
            sql.SQL("DELETE FROM {} WHERE ctid = (SELECT ctid FROM {}").format(
                _table_identifier(command.table), _table_identifier(command.table)
            )
            + sql.SQL(command.where)
            + sql.SQL(")")
        )
        return self._write(command.connection, statement, command.params)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def _fetch(
        self, connection: ConnectionSelector, statement: sql.Composable, params: Dict[str, Any]
    ) -> List[Dict[str, Any]]:
        pool = self._pool_factory(connection)
        with pool.connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                apply_statement_timeout(cur, self._statement_timeout_ms)
                cur.execute(statement, params)
                return cur.fetchall()

    def _write(
        self, connection: ConnectionSelector, statement: sql.Composable, params: Dict[str, Any]
    ) -> int:
        pool = self._pool_factory(connection)
        with pool.connection() as conn:
            with conn.cursor() as cur:
                apply_statement_timeout(cur, self._statement_timeout_ms)
                cur.execute(statement, params)
                return cur.rowcount

    def _last_ids(self) -> Dict[str, Any]:
        ids = getattr(self._local, "ids", None)
        if ids is None:
            ids = self._local.ids = {}
        return ids


@lru_cache(maxsize=1)
def get_engine() -> ExecutionEngine:
    """
    Process-wide default engine, created lazily from settings.
    """
    return PostgresEngine()


__all__ = ["ExecutionEngine", "PostgresEngine", "get_engine"]
