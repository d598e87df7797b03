"""
Single-row Active Record.

A `Record` represents exactly one row of a named table. It is bound to a
locating query before any data is known, tracks the primary key value inside
its query params, and turns load/add/save/delete/exists intents into typed
commands for an execution engine.

Example
-------
    record = Record(["id", "name", "email"], "users", "id", 1, {}, " WHERE id = %(id)s")
    record.name = "Ada"
    if record.load(7):
        record.email = "ada@example.com"
        record.save()
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Mapping, Optional

from activerow.domain.commands import Command, Delete, Exists, Insert, LastInsertId, Select, Update
from activerow.domain.errors import MissingKeyError, UnknownColumnError
from activerow.domain.query import ConnectionSelector, bind_key, normalize_fragment
from activerow.utils.logging import get_logger

if TYPE_CHECKING:
    from activerow.infrastructure.engine import ExecutionEngine

log = get_logger(__name__)


class Record:
    """
    Handle for one row of `table`, identified by `key` and a locating query.

    Column names are fixed at construction; unset columns hold None. Reading
    an unknown column through `get`/`record[name]` raises `UnknownColumnError`,
    while `set` reports unknown names by returning False.

    Not safe for concurrent use: each operation issues a single blocking
    command to the engine.
    """

    def __init__(
        self,
        columns: Iterable[str],
        table: str,
        key: str,
        connection: ConnectionSelector,
        query_params: Optional[Mapping[str, Any]],
        query_sql: Optional[str],
        engine: Optional["ExecutionEngine"] = None,
    ) -> None:
        data: Dict[str, Any] = dict.fromkeys(columns)
        data[key] = None
        self._columns = data
        self._table = table
        self._key = key
        self._connection = connection
        self._query_params: Dict[str, Any] = dict(query_params or {})
        self._query_sql = normalize_fragment(query_sql)
        self._loaded = False
        self._engine = engine

    # ------------------------------------------------------------------
    # Column access
    # ------------------------------------------------------------------

    def get(self, name: str) -> Any:
        """Return the value of column `name`."""
        if not self.is_column(name):
            raise UnknownColumnError(self._table, name)
        return self._columns[name]

    def set(self, name: str, value: Any) -> bool:
        """Store `value` into column `name`; False if `name` is not a column."""
        return self.set_column(name, value)

    def set_column(self, name: str, value: Any) -> bool:
        """
        Write a column value, keeping the key binding in the query params.

        Returns True when `name` is a column (the value was stored) and False
        otherwise, in which case nothing changes.
        """
        if not self.is_column(name):
            return False
        self._columns[name] = value
        if name == self._key:
            self._query_params = bind_key(self._query_params, self._key, value)
        self._loaded = False
        return True

    def __getitem__(self, name: str) -> Any:
        return self.get(name)

    def __setitem__(self, name: str, value: Any) -> None:
        if not self.set_column(name, value):
            raise UnknownColumnError(self._table, name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.is_column(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.get_columns())

    def __len__(self) -> int:
        return len(self._columns)

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails.
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self.get(name)
        except UnknownColumnError as exc:
            raise AttributeError(str(exc)) from exc

    def __setattr__(self, name: str, value: Any) -> None:
        if not name.startswith("_") and "_columns" in self.__dict__:
            if self.set_column(name, value):
                return
        object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(table={self._table!r}, key={self._key!r}, "
            f"loaded={self._loaded}, data={self._columns!r})"
        )

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def get_columns(self) -> List[str]:
        return list(self._columns)

    def get_data(self, include_key: bool = True) -> Dict[str, Any]:
        """
        Copy of the column values.

        With `include_key=False` the primary key entry is left out of the copy;
        the record itself is unchanged.
        """
        data = dict(self._columns)
        if not include_key:
            data.pop(self._key, None)
        return data

    def get_key(self) -> str:
        return self._key

    def get_table(self) -> str:
        return self._table

    def get_connection(self) -> ConnectionSelector:
        return self._connection

    def get_query_params(self) -> Dict[str, Any]:
        return dict(self._query_params)

    def get_query_sql(self) -> str:
        return self._query_sql

    def is_column(self, name: str) -> bool:
        return name in self._columns

    def is_loaded(self) -> bool:
        return self._loaded

    def set_data(self, columns_and_values: Mapping[str, Any]) -> bool:
        """
        Assign several columns at once.

        Unknown names are skipped. Returns True if at least one column was set.
        """
        is_set = False
        for name, value in columns_and_values.items():
            if self.set_column(name, value):
                is_set = True
        return is_set

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def add(self, ignore_errors: bool = False) -> bool:
        """
        Insert the row.

        The key must be set beforehand; after a successful insert it is
        replaced by the engine's last insert id (None if nothing was generated).
        """
        self._validate_key_value()
        affected = self._dispatch(
            Insert(
                connection=self._connection,
                table=self._table,
                where=self._query_sql,
                params=self._query_params,
                values=self.get_data(False),
                key=self._key,
                ignore_errors=ignore_errors,
            )
        )
        if affected > 0:
            self.set_column(self._key, self._dispatch(LastInsertId(connection=self._connection)))
            return True
        return False

    def delete(self, ignore_errors: bool = False) -> bool:
        """Delete the backing row. In-memory values are kept."""
        self._validate_key_value()
        affected = self._dispatch(
            Delete(
                connection=self._connection,
                table=self._table,
                where=self._query_sql,
                params=self._query_params,
                ignore_errors=ignore_errors,
            )
        )
        return affected > 0

    def save(self, ignore_errors: bool = False) -> bool:
        """Update the backing row with every non-key column value."""
        self._validate_key_value()
        affected = self._dispatch(
            Update(
                connection=self._connection,
                table=self._table,
                where=self._query_sql,
                params=self._query_params,
                values=self.get_data(False),
                ignore_errors=ignore_errors,
            )
        )
        return affected > 0

    def load(self, id: Optional[int] = None) -> bool:
        """
        Fetch the row and merge it into the record.

        A positive `id` is assigned to the key column first; otherwise the key
        must already be set. Returns False when no row matches.
        """
        self._loaded = False
        try:
            record_id = int(id) if id is not None else 0
        except (TypeError, ValueError):
            record_id = 0

        if record_id > 0:
            self.set_column(self._key, record_id)
        else:
            self._validate_key_value()

        rows = self._dispatch(
            Select(
                connection=self._connection,
                table=self._table,
                where=self._query_sql,
                params=self._query_params,
                columns=tuple(self.get_columns()),
            )
        )
        if rows and self.set_data(dict(rows[0])):
            self._loaded = True
            return True
        return False

    def is_record(self) -> bool:
        """Check whether the backing row exists."""
        self._validate_key_value()
        rows = self._dispatch(
            Exists(
                connection=self._connection,
                table=self._table,
                where=self._query_sql,
                params=self._query_params,
            )
        )
        if rows:
            return int(dict(rows[0])["is_record"]) > 0
        return False

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_key_value(self) -> None:
        if self._columns.get(self._key) is None:
            raise MissingKeyError(self._table, self._key)

    def _get_engine(self) -> "ExecutionEngine":
        if self._engine is None:
            from activerow.infrastructure.engine import get_engine

            self._engine = get_engine()
        return self._engine

    def _dispatch(self, command: Command) -> Any:
        log.debug(
            command.render(),
            extra={"table": self._table, "connection": self._connection, "op": command.op},
        )
        return self._get_engine().execute(command)


__all__ = ["Record"]
