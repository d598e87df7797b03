"""
Infrastructure package for activerow.

Centralizes database connectivity (pools per connection selector) and the
PostgreSQL execution engine. Keep this layer focused on I/O and resource
management, decoupled from the Record.
"""

from activerow.infrastructure.db_factory import PoolManager, get_pool, get_sync_connection
from activerow.infrastructure.engine import ExecutionEngine, PostgresEngine, get_engine

__all__ = [
    "ExecutionEngine",
    "PoolManager",
    "PostgresEngine",
    "get_engine",
    "get_pool",
    "get_sync_connection",
]
