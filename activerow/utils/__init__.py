"""
Utilities package for activerow.

Exports shared helpers for cross-cutting concerns such as logging.
Keep this package lightweight and free of domain-specific logic.
"""

from activerow.utils.logging import configure_logging, get_logger

__all__ = [
    "configure_logging",
    "get_logger",
]
