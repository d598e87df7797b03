from __future__ import annotations

import json
import sys
from typing import Any, Dict, List, NoReturn, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table

from activerow.config import get_settings
from activerow.domain.errors import ModelError
from activerow.domain.factory import model
from activerow.domain.models import Record
from activerow.infrastructure.db_factory import get_sync_connection
from activerow.infrastructure.engine import get_engine
from activerow.utils.logging import configure_logging

app = typer.Typer(help="activerow CLI: inspect and edit single table rows.")

EXIT_NOT_FOUND = 1
EXIT_ENGINE_ERROR = 2

KeyOption = typer.Option("id", "--key", "-k", help="Primary key column.")
ColumnsOption = typer.Option(
    None, "--columns", "-c", help="Comma separated columns (discovered when omitted)."
)
ConnectionOption = typer.Option(
    "1", "--connection", help="Connection selector (1 is the default connection)."
)


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


def _selector(connection: str) -> Any:
    return int(connection) if connection.isdigit() else connection


def _record(table: str, id: str, key: str, columns: Optional[str], connection: str) -> Record:
    column_list = [c.strip() for c in columns.split(",") if c.strip()] if columns else None
    return model(
        table,
        key=key,
        columns=column_list,
        connection=_selector(connection),
        id=int(id) if id.isdigit() else id,
        engine=get_engine(),
    )


def _parse_assignments(assignments: List[str]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for item in assignments:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected column=value, got '{item}'")
        values[name.strip()] = value
    return values


def _fail(exc: ModelError) -> NoReturn:
    typer.echo(f"Error: {exc}", err=True)
    raise typer.Exit(code=EXIT_ENGINE_ERROR)


def _render(record: Record) -> Table:
    key = record.get_key()
    table = Table(title=f"{record.get_table()} ({key}={record.get(key)})", box=box.ROUNDED)
    table.add_column("Column", style="cyan")
    table.add_column("Value")
    for name, value in record.get_data().items():
        table.add_row(name, "NULL" if value is None else str(value))
    return table


@app.command()
def info(
    check: bool = typer.Option(False, "--check", help="Open a connection to verify settings."),
) -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"timeout_ms={settings.db_statement_timeout_ms} "
        f"connections={','.join(sorted(settings.db_connections)) or '-'}"
    )
    if check:
        try:
            with get_sync_connection() as conn:
                conn.execute("SELECT 1")
        except Exception as exc:  # noqa: BLE001 - report any connectivity failure
            typer.echo(f"Connection failed: {exc}", err=True)
            raise typer.Exit(code=EXIT_ENGINE_ERROR)
        typer.echo("Connection OK")


@app.command()
def show(
    table: str,
    id: str,
    key: str = KeyOption,
    columns: Optional[str] = ColumnsOption,
    connection: str = ConnectionOption,
    as_json: bool = typer.Option(False, "--json", help="Print the row as JSON."),
) -> None:
    """
    Load one row and print it.
    """
    try:
        record = _record(table, id, key, columns, connection)
        found = record.load()
    except ModelError as exc:
        _fail(exc)
    if not found:
        typer.echo(f"No row in {table} where {key}={id}", err=True)
        raise typer.Exit(code=EXIT_NOT_FOUND)
    if as_json:
        typer.echo(json.dumps(record.get_data(), indent=2, default=str))
    else:
        Console().print(_render(record))


@app.command()
def exists(
    table: str,
    id: str,
    key: str = KeyOption,
    connection: str = ConnectionOption,
) -> None:
    """
    Print whether a row exists.
    """
    try:
        found = _record(table, id, key, key, connection).is_record()
    except ModelError as exc:
        _fail(exc)
    typer.echo("true" if found else "false")
    if not found:
        raise typer.Exit(code=EXIT_NOT_FOUND)


@app.command("set")
def set_columns(
    table: str,
    id: str,
    assignments: List[str] = typer.Argument(..., help="column=value pairs."),
    key: str = KeyOption,
    columns: Optional[str] = ColumnsOption,
    connection: str = ConnectionOption,
    ignore_errors: bool = typer.Option(False, "--ignore-errors", help="Suppress engine errors."),
) -> None:
    """
    Load a row, assign column values and save it.
    """
    values = _parse_assignments(assignments)
    try:
        record = _record(table, id, key, columns, connection)
        if not record.load():
            typer.echo(f"No row in {table} where {key}={id}", err=True)
            raise typer.Exit(code=EXIT_NOT_FOUND)
        unknown = [name for name in values if not record.is_column(name)]
        if unknown:
            raise typer.BadParameter(f"Unknown column(s): {', '.join(unknown)}")
        record.set_data(values)
        saved = record.save(ignore_errors=ignore_errors)
    except ModelError as exc:
        _fail(exc)
    typer.echo("saved" if saved else "unchanged")


@app.command()
def delete(
    table: str,
    id: str,
    key: str = KeyOption,
    connection: str = ConnectionOption,
    ignore_errors: bool = typer.Option(False, "--ignore-errors", help="Suppress engine errors."),
) -> None:
    """
    Delete one row.
    """
    try:
        deleted = _record(table, id, key, key, connection).delete(ignore_errors=ignore_errors)
    except ModelError as exc:
        _fail(exc)
    typer.echo("deleted" if deleted else "not found")
    if not deleted:
        raise typer.Exit(code=EXIT_NOT_FOUND)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
