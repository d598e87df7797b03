"""
Typed commands sent from a Record to an execution engine.

Every CRUD intent becomes one frozen command value. Engines dispatch on the
concrete type (or on `op`); `render()` produces the compact command string
used in logs, e.g. `[2]users:mod/ignore WHERE id = %(id)s LIMIT 1`.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field

from activerow.domain.query import DEFAULT_CONNECTION, ConnectionSelector, connection_qualifier


class _Command(BaseModel):
    connection: ConnectionSelector = Field(DEFAULT_CONNECTION, description="Connection selector.")

    model_config = {
        "frozen": True,
        "arbitrary_types_allowed": True,
    }

    @property
    def qualifier(self) -> str:
        return connection_qualifier(self.connection)

    def render(self) -> str:  # pragma: no cover - overridden by every command
        raise NotImplementedError


class _TargetedCommand(_Command):
    table: str = Field(..., description="Target table name.")
    where: str = Field(..., description="Normalized, single-row locating fragment.")
    params: Dict[str, Any] = Field(default_factory=dict, description="Bound query params.")


class _WriteCommand(_TargetedCommand):
    ignore_errors: bool = Field(False, description="Report 0 affected rows instead of raising.")

    def _render_write(self, keyword: str) -> str:
        modifier = "/ignore" if self.ignore_errors else ""
        return f"{self.qualifier}{self.table}:{keyword}{modifier}{self.where}"


class Insert(_WriteCommand):
    op: Literal["add"] = "add"
    values: Dict[str, Any] = Field(default_factory=dict, description="Column values to insert.")
    key: Optional[str] = Field(None, description="Key column whose generated value is reported.")

    def render(self) -> str:
        return self._render_write("add")


class Update(_WriteCommand):
    op: Literal["mod"] = "mod"
    values: Dict[str, Any] = Field(default_factory=dict, description="Column values to write.")

    def render(self) -> str:
        return self._render_write("mod")


class Delete(_WriteCommand):
    op: Literal["del"] = "del"

    def render(self) -> str:
        return self._render_write("del")


class Select(_TargetedCommand):
    op: Literal["select"] = "select"
    columns: Tuple[str, ...] = Field(..., description="Columns to fetch, in order.")

    def render(self) -> str:
        return f"{self.qualifier}:query SELECT {','.join(self.columns)} FROM {self.table}{self.where}"


class Exists(_TargetedCommand):
    op: Literal["exists"] = "exists"

    def render(self) -> str:
        return (
            f"{self.qualifier}:query SELECT EXISTS(SELECT 1 FROM {self.table}{self.where})"
            " AS is_record"
        )


class LastInsertId(_Command):
    op: Literal["id"] = "id"

    def render(self) -> str:
        return f"{self.qualifier}:id"


Command = Union[Insert, Update, Delete, Select, Exists, LastInsertId]


__all__ = ["Command", "Delete", "Exists", "Insert", "LastInsertId", "Select", "Update"]
