"""
Snowflake database connection management.

Provides the connection factory the application holds for its lifetime,
plus a mock connection with in-memory storage for local development.

Most code never touches this module directly - it goes through
ScheduleRepository, which handles the translation between domain models
and database rows.
"""

import base64
import logging
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.schedules import SCHEDULE_COLUMNS, SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(config: SnowflakeConfig) -> bytes:
    """
    Load the private key for key-pair authentication.

    Snowflake wants DER/PKCS8 bytes, not a PEM file path. The key comes
    either from a file or, for deployments, base64-encoded PEM.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    if config.private_key_path:
        with open(config.private_key_path, 'rb') as key_file:
            pem = key_file.read()
    else:
        pem = base64.b64decode(config.private_key_base64)

    private_key = serialization.load_pem_private_key(
        pem,
        password=None,  # No password on the key
        backend=default_backend()
    )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If a private key (path or base64) is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    conn = None
    try:
        connect_params = {
            'account': config.account,
            'user': config.user,
            'database': config.database,
            'schema': config.schema,
            'warehouse': config.warehouse,
            'role': config.role,
            'client_session_keep_alive': True,
        }

        if config.private_key_path or config.private_key_base64:
            logger.info("Using key-pair authentication for Snowflake")
            connect_params['private_key'] = _load_private_key(config)
        elif config.password:
            logger.info("Using password authentication for Snowflake")
            connect_params['password'] = config.password
        else:
            raise SnowflakeConnectionError(
                "Either password or a private key must be provided"
            )

        conn = snowflake.connector.connect(**connect_params)

        logger.debug(
            "Established Snowflake connection",
            extra={
                "account": config.account,
                "database": config.database,
                "schema": config.schema,
            }
        )

    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

_COLUMN_NAMES = [name.strip() for name in SCHEDULE_COLUMNS.split(",")]


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    ScheduleRepository: SELECT by id / by owner, INSERT, the conditional
    UPDATE on revision, and DELETE. Queries are recognized by pattern
    matching; parameters arrive in the order the repository binds them.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100], "params": params}
        )

        normalized = " ".join(query.upper().split())
        self._results = []
        self._rowcount = 0

        if normalized == "SELECT 1":
            self._results = [(1,)]
        elif normalized.startswith("SELECT") and "FROM SCHEDULES" in normalized:
            self._handle_select(normalized, params or ())
        elif normalized.startswith("INSERT INTO SCHEDULES"):
            self._handle_insert(params or ())
        elif normalized.startswith("UPDATE SCHEDULES"):
            self._handle_update(params or ())
        elif normalized.startswith("DELETE FROM SCHEDULES"):
            self._handle_delete(params or ())
        else:
            raise NotImplementedError(f"Mock cursor can't run: {query[:60]}")

        return self

    def _handle_select(self, query: str, params: tuple) -> None:
        schedules = self._storage['schedules']

        if "WHERE SCHEDULE_ID = %S" in query:
            row = schedules.get(params[0])
            self._results = [self._as_tuple(row)] if row else []

        elif "WHERE USER_ID = %S" in query:
            rows = [r for r in schedules.values() if r['user_id'] == params[0]]
            rows.sort(key=lambda r: r['created_at'], reverse=True)
            self._results = [self._as_tuple(r) for r in rows]

    def _handle_insert(self, params: tuple) -> None:
        row = dict(zip(_COLUMN_NAMES, params))
        self._storage['schedules'][row['schedule_id']] = row
        self._rowcount = 1

    def _handle_update(self, params: tuple) -> None:
        (
            title, description, start_date, end_date, status, resources,
            revision, updated_at, schedule_id, user_id, expected_revision,
        ) = params

        row = self._storage['schedules'].get(schedule_id)
        if row is None or row['user_id'] != user_id or row['revision'] != expected_revision:
            return

        row.update({
            'title': title,
            'description': description,
            'start_date': start_date,
            'end_date': end_date,
            'status': status,
            'resources': resources,
            'revision': revision,
            'updated_at': updated_at,
        })
        self._rowcount = 1

    def _handle_delete(self, params: tuple) -> None:
        schedule_id, user_id = params
        row = self._storage['schedules'].get(schedule_id)
        if row is not None and row['user_id'] == user_id:
            del self._storage['schedules'][schedule_id]
            self._rowcount = 1

    def _as_tuple(self, row: dict) -> tuple:
        return tuple(row[name] for name in _COLUMN_NAMES)

    def fetchone(self):
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores rows in memory. One instance is shared for the lifetime of the
    application so data persists across requests.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        # In-memory storage: {table_name: {id: row_dict}}
        self._storage: dict[str, dict[str, dict]] = {
            'schedules': {},
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        """Rollback transaction (no-op for mock)."""
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    # Helper methods for testing
    def _get_schedule_row(self, schedule_id: str) -> Optional[dict]:
        """Get a raw schedule row (for test assertions)."""
        return self._storage['schedules'].get(schedule_id)


# ---------------------------------------------------------------------------
# Connection Factory
# ---------------------------------------------------------------------------

class SnowflakeConnectionFactory:
    """
    Hands out connections for the duration of one request.

    Created once at application startup and kept on app.state. For real
    Snowflake each request gets its own connection, closed afterwards.
    In mock mode every request shares the one in-memory connection.
    """

    def __init__(
        self,
        config: Optional[SnowflakeConfig] = None,
        mock_connection: Optional[MockSnowflakeConnection] = None,
    ) -> None:
        if config is None and mock_connection is None:
            raise ValueError("config is required when not in mock mode")

        self._config = config
        self._mock_connection = mock_connection

    @property
    def is_mock(self) -> bool:
        return self._mock_connection is not None

    @contextmanager
    def connection(self) -> Generator[SnowflakeConnection, None, None]:
        if self._mock_connection is not None:
            yield self._mock_connection
            return

        with get_snowflake_connection(self._config) as conn:
            yield conn

    def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        with self.connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            finally:
                cursor.close()


def create_connection_factory(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> SnowflakeConnectionFactory:
    """
    Create the connection factory based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, back the factory with a shared mock connection
    """
    if mock_mode:
        return SnowflakeConnectionFactory(mock_connection=MockSnowflakeConnection())

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return SnowflakeConnectionFactory(config=config)
