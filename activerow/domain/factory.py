"""
Record construction helpers.

`model()` prepares the locating query for a Record so callers only name the
table, its key and (optionally) its columns:

    user = model("users", key="id", columns=["name", "email"], id=7)
    user.load()

When `columns` is omitted they are discovered through the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from activerow.domain.models import Record
from activerow.domain.query import (
    DEFAULT_CONNECTION,
    ConnectionSelector,
    key_fragment,
    validate_identifier,
)

if TYPE_CHECKING:
    from activerow.infrastructure.engine import ExecutionEngine


def model(
    table: str,
    key: str = "id",
    columns: Optional[Sequence[str]] = None,
    connection: ConnectionSelector = DEFAULT_CONNECTION,
    where: Optional[str] = None,
    params: Optional[Mapping[str, Any]] = None,
    id: Any = None,
    engine: Optional["ExecutionEngine"] = None,
) -> Record:
    """
    Build a Record for one row of `table`.

    Parameters
    ----------
    table : str
        Table name, optionally schema-qualified.
    key : str
        Primary key column.
    columns : sequence of str, optional
        Column names; discovered with `engine.describe()` when omitted.
    connection : int | str
        Connection selector.
    where : str, optional
        Locating fragment. Defaults to `WHERE <key> = %(<key>)s`.
    params : mapping, optional
        Extra bound parameters referenced by `where`.
    id : optional
        Initial key value.
    engine : ExecutionEngine, optional
        Engine used by the record; the default engine when omitted.
    """
    validate_identifier(key)
    for part in table.split("."):
        validate_identifier(part)

    if columns is None:
        if engine is None:
            from activerow.infrastructure.engine import get_engine

            engine = get_engine()
        columns = engine.describe(table, connection)

    record = Record(
        columns,
        table,
        key,
        connection,
        params,
        where if where is not None else key_fragment(key),
        engine=engine,
    )
    if id is not None:
        record.set_column(key, id)
    return record


__all__ = ["model"]
