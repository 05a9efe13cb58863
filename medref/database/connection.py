from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from medref.config.settings import Settings
from medref.exceptions import StorageUnavailableError
from medref.logging.logger import Log


def build_conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password}"
    )


class Database:
    """Owns the connection pool for the lifetime of the process.

    Opened once at startup, closed on shutdown, and passed to every
    repository and service that needs the store.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    @classmethod
    def open(cls, settings: Settings) -> "Database":
        """Create the pool and wait until at least one connection is usable."""
        pool = ConnectionPool(
            build_conninfo(settings),
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            open=False,
        )
        try:
            pool.open(wait=True)
        except (psycopg.OperationalError, PoolTimeout) as exc:
            pool.close()
            raise StorageUnavailableError(f"Database unavailable: {exc}") from exc
        Log.info(f"Connection pool opened for database '{settings.db_database}'")
        return cls(pool)

    def close(self) -> None:
        """Close the pool. Safe to call more than once."""
        if not self._pool.closed:
            self._pool.close()
            Log.info("Connection pool closed")

    @contextmanager
    def connection(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a pooled connection. Caller manages commit/rollback."""
        try:
            with self._pool.connection() as conn:
                yield conn
        except (psycopg.OperationalError, PoolTimeout) as exc:
            Log.error(f"Storage failure: {exc}")
            raise StorageUnavailableError(f"Database unavailable: {exc}") from exc

    @contextmanager
    def transaction(self) -> Generator[psycopg.Connection[Any], None, None]:
        """Yield a connection inside a single transaction.

        Committed when the block exits normally, rolled back on any exception.
        """
        with self.connection() as conn:
            with conn.transaction():
                yield conn
