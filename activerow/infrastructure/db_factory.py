"""
Database connection factory utilities for activerow.

Maps connection selectors to PostgreSQL DSNs and manages one psycopg
ConnectionPool per selector. The PoolManager singleton closes every pool on
application exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Dict, Optional

import psycopg
from psycopg import Connection, sql
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from activerow.config import Settings, get_settings
from activerow.domain.errors import EngineError
from activerow.domain.query import ConnectionSelector, is_default_connection


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose the default connection DSN from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def resolve_dsn(connection: ConnectionSelector, settings: Optional[Settings] = None) -> str:
    """
    Return the DSN for a connection selector.

    Raises
    ------
    EngineError
        If the selector is neither the default one nor configured in
        `DB_CONNECTIONS`.
    """
    settings = settings or get_settings()
    if is_default_connection(connection):
        return build_dsn(settings)
    try:
        return settings.db_connections[str(connection)]
    except KeyError:
        raise EngineError(f"Unknown connection '{connection}'") from None


def apply_statement_timeout(cur: psycopg.Cursor, timeout_ms: int) -> None:
    """Set a per-transaction statement timeout; no-op when disabled."""
    if timeout_ms and timeout_ms > 0:
        cur.execute(
            sql.SQL("SET LOCAL statement_timeout = {}").format(sql.Literal(int(timeout_ms)))
        )


class PoolManager:
    """
    Thread-safe singleton owning one connection pool per connection selector.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._pools: Dict[str, ConnectionPool] = {}
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_pool(self, connection: ConnectionSelector) -> ConnectionPool:
        """
        Get or create the pool serving `connection`.

        Parameters
        ----------
        connection : int | str
            Connection selector; the default selector maps to the settings DSN.

        Returns
        -------
        ConnectionPool
            The managed pool instance.
        """
        name = "default" if is_default_connection(connection) else str(connection)
        with self._lock:
            pool = self._pools.get(name)
            if pool is None:
                settings = get_settings()
                pool = ConnectionPool(
                    conninfo=resolve_dsn(connection, settings),
                    min_size=settings.db_pool_min_size,
                    max_size=settings.db_pool_max_size,
                    open=True,
                )
                self._pools[name] = pool
            return pool

    def close_all(self) -> None:
        """
        Close all managed pools and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            pools, self._pools = self._pools, {}
        for pool in pools.values():
            pool.close()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(connection: ConnectionSelector = 1) -> Connection:
    """
    Acquire a dedicated connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Use this for one-off operations; the engine itself goes through the pools.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return psycopg.connect(resolve_dsn(connection))


def get_pool(connection: ConnectionSelector) -> ConnectionPool:
    """Get or create the pool for `connection` via PoolManager."""
    return PoolManager().get_pool(connection)


__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "get_pool",
    "get_sync_connection",
    "resolve_dsn",
]
