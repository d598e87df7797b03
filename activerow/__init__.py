"""
activerow - single-row Active Record over PostgreSQL.

A Record is a handle on exactly one row of a table: it is bound to a locating
query, keeps its columns in a dynamic map, and turns load/add/save/delete and
existence checks into typed commands run by an execution engine.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from activerow.config import Settings, get_settings
from activerow.domain import (
    EngineError,
    MissingKeyError,
    ModelError,
    Record,
    UnknownColumnError,
    model,
)
from activerow.infrastructure.engine import ExecutionEngine, PostgresEngine, get_engine
from activerow.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records
    "Record",
    "model",
    # Errors
    "ModelError",
    "MissingKeyError",
    "UnknownColumnError",
    "EngineError",
    # Engines
    "ExecutionEngine",
    "PostgresEngine",
    "get_engine",
    # Logging
    "configure_logging",
    "get_logger",
]
