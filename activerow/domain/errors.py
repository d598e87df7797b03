"""
Error taxonomy for single-row records.

Precondition failures (`MissingKeyError`, `UnknownColumnError`) are raised
locally before anything reaches the execution engine. `EngineError` wraps any
failure the engine surfaces while running a command.
"""

from __future__ import annotations

from typing import Any, Optional


class ModelError(Exception):
    """Base class for every error raised by activerow."""


class MissingKeyError(ModelError):
    """The primary key column holds no value but the operation needs one."""

    def __init__(self, table: str, key: str) -> None:
        super().__init__(f"Model primary key value is required ({table}.{key})")
        self.table = table
        self.key = key


class UnknownColumnError(ModelError, LookupError):
    """A data-oriented access named a column the record does not have."""

    def __init__(self, table: str, column: str) -> None:
        super().__init__(f"No such column '{column}' in table '{table}'")
        self.table = table
        self.column = column


class EngineError(ModelError):
    """A command failed inside the execution engine."""

    def __init__(self, message: str, command: Optional[Any] = None) -> None:
        super().__init__(message)
        self.command = command


__all__ = ["ModelError", "MissingKeyError", "UnknownColumnError", "EngineError"]
