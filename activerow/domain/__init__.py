"""
Domain package for activerow.

Exports the Record, its command types, errors, and the `model()` factory.
Keep this package free of driver-specific code.
"""

from activerow.domain.commands import Command, Delete, Exists, Insert, LastInsertId, Select, Update
from activerow.domain.errors import EngineError, MissingKeyError, ModelError, UnknownColumnError
from activerow.domain.factory import model
from activerow.domain.models import Record

__all__ = [
    # Record
    "Record",
    "model",
    # Commands
    "Command",
    "Delete",
    "Exists",
    "Insert",
    "LastInsertId",
    "Select",
    "Update",
    # Errors
    "EngineError",
    "MissingKeyError",
    "ModelError",
    "UnknownColumnError",
]
