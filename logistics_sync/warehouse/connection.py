"""
PostgreSQL connection pool for the record store (psycopg3 + psycopg_pool)

The pool is shared by the import run and the bounded update fan-out, so its
max_size also bounds the number of concurrent store operations. Every
statement runs in its own transaction: committed when it succeeds, rolled
back when it raises.
"""
import os
import time
from contextlib import contextmanager

from psycopg import OperationalError
from psycopg.conninfo import make_conninfo
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from logistics_sync.core.exceptions import StoreUnavailableError
from logistics_sync.observability.logger import get_logger

logger = get_logger(__name__)

APPLICATION_NAME = "logistics-sync"


class DatabaseConnectionPool:
    """
    Pool of PostgreSQL connections returning rows as dictionaries.

    Failures to reach the database surface as StoreUnavailableError, which
    aborts the current import run. Statement errors (constraint violations,
    bad data) propagate as psycopg errors for the store to classify.
    """

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = 30.0,
        conninfo: str | None = None,
    ) -> None:
        """
        Args:
            host: Database host (defaults to env var DB_HOST)
            port: Database port (defaults to env var DB_PORT)
            database: Database name (defaults to env var DB_NAME)
            user: Database user (defaults to env var DB_USER)
            password: Database password (defaults to env var DB_PASSWORD, required)
            min_size: Connections kept open
            max_size: Upper bound on open connections
            timeout: Seconds to wait for a connection, also the connect timeout
            conninfo: Complete connection string, used instead of the settings above

        Raises:
            ValueError: If no password is configured and no conninfo is given
        """
        self.min_size = min_size
        self.max_size = max_size
        self.timeout = timeout
        self._pool: ConnectionPool | None = None

        if conninfo:
            self.conninfo = conninfo
            return

        password = password or os.getenv("DB_PASSWORD")
        if not password:
            raise ValueError(
                "Database password must be provided. "
                "Set DB_PASSWORD environment variable or pass to constructor."
            )

        self.conninfo = make_conninfo(
            host=host or os.getenv("DB_HOST", "localhost"),
            port=port or int(os.getenv("DB_PORT", "5432")),
            dbname=database or os.getenv("DB_NAME", "logistics"),
            user=user or os.getenv("DB_USER", "logistics"),
            password=password,
            connect_timeout=int(timeout),
            application_name=APPLICATION_NAME,
        )

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self, max_retries: int = 3, retry_delay: float = 2.0) -> None:
        """
        Open the pool, retrying while the database is unreachable.

        Args:
            max_retries: Connection attempts before giving up
            retry_delay: Seconds between attempts

        Raises:
            StoreUnavailableError: If every attempt failed
        """
        if self._pool is not None:
            return

        for attempt in range(1, max_retries + 1):
            pool = ConnectionPool(
                conninfo=self.conninfo,
                min_size=self.min_size,
                max_size=self.max_size,
                timeout=self.timeout,
                kwargs={"row_factory": dict_row},
                open=False,
            )
            try:
                pool.open(wait=True, timeout=self.timeout)
            except (OperationalError, PoolTimeout) as e:
                pool.close()
                logger.warning(f"Database connection attempt {attempt}/{max_retries} failed: {e}")
                if attempt == max_retries:
                    raise StoreUnavailableError(
                        f"Failed to connect to database after {max_retries} attempts: {e}"
                    ) from e
                time.sleep(retry_delay)
            else:
                self._pool = pool
                logger.info(
                    "Database connection pool opened",
                    extra={"min_size": self.min_size, "max_size": self.max_size},
                )
                return

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def get_connection(self):
        """
        Borrow a connection for one transaction.

        The transaction commits when the block exits normally and rolls back
        when it raises.

        Yields:
            psycopg.Connection with dict rows

        Raises:
            RuntimeError: If the pool is not open
            StoreUnavailableError: If no connection can be acquired
        """
        if self._pool is None:
            raise RuntimeError("Connection pool is not open. Call open() first.")

        try:
            with self._pool.connection() as conn:
                yield conn
        except (OperationalError, PoolTimeout) as e:
            raise StoreUnavailableError(f"Database connection failed: {e}") from e

    def execute_query(self, query, params: tuple | dict | None = None) -> list[dict]:
        """
        Run a statement and return its rows (SELECT, or anything with RETURNING).

        Args:
            query: SQL string or psycopg.sql.Composed
            params: Statement parameters

        Returns:
            One dictionary per row; empty when the statement returns no rows
        """
        with self.get_connection() as conn:
            cur = conn.execute(query, params)
            return cur.fetchall() if cur.description else []

    def execute_command(self, command, params: tuple | dict | None = None) -> int:
        """
        Run an INSERT/UPDATE/DELETE statement.

        Returns:
            Number of rows affected
        """
        with self.get_connection() as conn:
            return conn.execute(command, params).rowcount

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
