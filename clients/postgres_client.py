"""
PostgreSQL client with connection pooling and RLS tenant isolation.

Uses psycopg2 with ThreadedConnectionPool. Tenant isolation enforced via
PostgreSQL Row Level Security - automatically reads the caller from contextvar
and sets app.current_company_id / app.current_user_id on each connection.

Security: No caller context = see nothing (RLS blocks all rows). This is safe.
True admin bypass requires connecting as a role with BYPASSRLS.

Connectivity failures surface as StorageUnavailableError so callers can tell
"retry later" apart from programming errors.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extensions
import psycopg2.extras
import psycopg2.pool

from core.config import AppConfig
from core.errors import StorageUnavailableError
from utils.user_context import _current_caller

logger = logging.getLogger(__name__)

# Global JSONB registration flag
_jsonb_registered = False

ISOLATION_LEVELS = {
    "read_committed": psycopg2.extensions.ISOLATION_LEVEL_READ_COMMITTED,
    "repeatable_read": psycopg2.extensions.ISOLATION_LEVEL_REPEATABLE_READ,
    "serializable": psycopg2.extensions.ISOLATION_LEVEL_SERIALIZABLE,
}


@contextmanager
def _storage_errors() -> Iterator[None]:
    """Translate connectivity and transaction-abort failures into StorageUnavailableError."""
    try:
        yield
    except psycopg2.pool.PoolError as e:
        logger.warning("Connection pool unavailable: %s", e)
        raise StorageUnavailableError(f"Connection pool unavailable: {e}") from e
    except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
        logger.warning("Database unavailable: %s", e)
        raise StorageUnavailableError(f"Database unavailable: {e}") from e


class PostgresClient:
    """
    PostgreSQL client with automatic RLS context from contextvar.

    Caller context is read from utils.user_context contextvar on each query.
    - Caller set → sees only their company's data (RLS filtered)
    - No caller → sees nothing (RLS blocks all rows)

    Usage:
        db = PostgresClient(database_url)

        # Single statement, autocommitted on success
        with caller_context(caller):
            estimates = db.execute("SELECT * FROM estimates")

        # Several statements that must commit together
        with caller_context(caller):
            with db.transaction() as cur:
                cur.execute("UPDATE ...")
                cur.execute("INSERT ...")
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, config: AppConfig | None = None):
        self._database_url = database_url
        self._config = config or AppConfig()
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                with _storage_errors():
                    pool = psycopg2.pool.ThreadedConnectionPool(
                        minconn=self._config.pool_min_connections,
                        maxconn=self._config.pool_max_connections,
                        dsn=self._database_url,
                        connect_timeout=self._config.connect_timeout_seconds,
                    )

                global _jsonb_registered
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    # Transaction cursors receive UUID params without _convert_params
                    psycopg2.extras.register_uuid()
                    _jsonb_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Get connection with RLS context from contextvar."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            with _storage_errors():
                conn = pool.getconn()
                if conn is None:
                    raise psycopg2.pool.PoolError("Could not get connection from pool")

                caller = _current_caller.get()

                with conn.cursor() as cur:
                    if caller is not None:
                        cur.execute("SET app.current_company_id = %s", (str(caller.company_id),))
                        cur.execute("SET app.current_user_id = %s", (str(caller.user_id),))
                    else:
                        # RLS policies map an empty setting to NULL, which matches no rows
                        cur.execute("SET app.current_company_id = ''")
                        cur.execute("SET app.current_user_id = ''")

            yield conn

        finally:
            if conn:
                # Discard anything left uncommitted (reads, aborted writes)
                if not conn.closed:
                    try:
                        conn.rollback()
                    except psycopg2.Error:
                        logger.warning("Rollback failed while releasing connection")
                pool.putconn(conn, close=bool(conn.closed))

    @contextmanager
    def transaction(self, isolation: str = "read_committed"):
        """
        Run several statements as one all-or-nothing transaction.

        Yields a RealDictCursor. Commits when the block exits normally and
        rolls back on any exception, which is re-raised. Connectivity and
        serialization failures are raised as StorageUnavailableError.

        Args:
            isolation: "read_committed", "repeatable_read" or "serializable"
        """
        level = ISOLATION_LEVELS.get(isolation)
        if level is None:
            raise ValueError(
                f"Unknown isolation level '{isolation}'. "
                f"Valid levels: {', '.join(sorted(ISOLATION_LEVELS))}"
            )

        with self.get_connection() as conn:
            with _storage_errors():
                # get_connection already opened a transaction for the RLS settings
                conn.commit()
                conn.set_session(isolation_level=level)
                try:
                    with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                        yield cur
                    conn.commit()
                finally:
                    if not conn.closed:
                        conn.rollback()
                        conn.set_session(isolation_level=ISOLATION_LEVELS["read_committed"])

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """Convert UUID objects to strings."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(params)

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with _storage_errors():
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(query, params)
                    if cur.description:
                        rows = [dict(row) for row in cur.fetchall()]
                        conn.commit()
                        return rows
                    conn.commit()
                    return []

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with _storage_errors():
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    result = cur.fetchone()
                    return result[0] if result else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return results."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with _storage_errors():
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(query, params)
                    rows = [dict(row) for row in cur.fetchall()]
                    conn.commit()
                    return rows

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
