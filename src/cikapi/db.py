"""
Database connection pool and table-agnostic query helpers.

DataStore owns a psycopg connection pool and exposes generic
find/create/update/delete primitives built from a table name and a
column -> value mapping. Table and column names are checked against the
enumeration in cikapi.schema.TABLES and composed as SQL identifiers;
values are always passed as parameters.

For testing, use set_connection_override() to inject a connection
that will be used instead of pooled ones. This enables transaction
rollback between tests.
"""

import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Mapping

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolClosed, PoolTimeout

from cikapi.config import Config
from cikapi.errors import QueryError, StorageUnavailable, StoreError
from cikapi.log import get_logger
from cikapi.schema import COUNT_SQL, SCHEMA_SQL, SEED_SQL, TABLES

logger = get_logger(__name__)


class DataStore:
    """
    Pooled access to a single PostgreSQL database.

    Lifecycle:
        store = DataStore(config)
        store.initialize()   # pool + liveness check + schema bootstrap
        ...
        store.close()
    """

    def __init__(self, config: Config):
        self.config = config
        self._pool: ConnectionPool | None = None
        self._closing = False
        self._override: psycopg.Connection | None = None
        # Connection bound by transaction() for the current thread
        self._local = threading.local()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def _acquire_timeout(self) -> float:
        return self.config.db_acquire_timeout_ms / 1000

    def initialize(self) -> None:
        """
        Create the pool, verify it with a ping, then bootstrap the schema.

        Raises:
            StorageUnavailable: If the pool cannot be opened, the liveness
                check fails, or the schema cannot be created. Callers are
                expected to halt startup.
        """
        if self._pool is not None:
            return

        pool = ConnectionPool(
            conninfo=self.config.database_url,
            min_size=1,
            max_size=self.config.db_pool_size,
            kwargs=self.config.connection_kwargs,
            timeout=self._acquire_timeout,
            name="cikapi",
            open=False,
        )
        try:
            pool.open(wait=True, timeout=self.config.db_connect_timeout_ms / 1000)
            with pool.connection(timeout=self._acquire_timeout) as conn:
                conn.execute("SELECT 1")
        except psycopg.Error as e:
            pool.close()
            logger.error("Database initialization failed: %s", e)
            raise StorageUnavailable(f"Database initialization failed: {e}", cause=e) from e

        self._pool = pool
        self._closing = False
        logger.info(
            "Database connection pool initialized successfully (max_size=%d)",
            self.config.db_pool_size,
        )

        try:
            self.bootstrap_schema()
        except StoreError as e:
            self.close()
            raise StorageUnavailable(str(e), cause=e.cause) from e

    def bootstrap_schema(self) -> None:
        """
        Create the stocks table if needed and seed it when empty.

        Safe to call multiple times.
        """
        try:
            with self.connection() as conn:
                with conn.transaction():
                    conn.execute(SCHEMA_SQL)
                    count = conn.execute(COUNT_SQL).fetchone()[0]
                    if count == 0:
                        conn.execute(SEED_SQL)
                        logger.info("Seeded empty stocks table with sample rows")
        except psycopg.Error as e:
            logger.error("Schema initialization failed: %s", e)
            raise QueryError(f"Schema initialization failed: {e}", cause=e) from e

        logger.info("Database schema initialized successfully")

    def close(self) -> None:
        """Close all connections in the pool. No-op if never initialized."""
        if self._pool is None:
            return
        self._closing = True
        try:
            self._pool.close()
        finally:
            self._pool = None
        logger.info("Database connection pool closed")

    # =========================================================================
    # Connection Override (for testing)
    # =========================================================================

    def set_connection_override(self, conn: psycopg.Connection) -> None:
        """
        Use ``conn`` for every subsequent operation instead of the pool.

        The caller owns the transaction on ``conn``: nothing is committed,
        rolled back, or closed by the store.
        """
        self._override = conn

    def clear_connection_override(self) -> None:
        """Clear the connection override, restoring normal behavior."""
        self._override = None

    # =========================================================================
    # Connection Management
    # =========================================================================

    def _require_pool(self) -> ConnectionPool:
        if self._pool is None or self._closing:
            raise StorageUnavailable("Database pool is not initialized")
        return self._pool

    @contextmanager
    def connection(self) -> Iterator[psycopg.Connection]:
        """
        Context manager for a database connection.

        In normal operation:
            - Acquires a pooled connection (waiting up to the acquire timeout)
            - Commits on successful exit
            - Rolls back on exception
            - Returns the connection to the pool

        Inside transaction(), or with an override set, the already bound
        connection is yielded and left untouched.
        """
        if self._override is not None:
            yield self._override
            return

        bound = getattr(self._local, "conn", None)
        if bound is not None:
            yield bound
            return

        pool = self._require_pool()
        try:
            conn = pool.getconn(timeout=self._acquire_timeout)
        except (PoolTimeout, PoolClosed) as e:
            logger.error("Could not acquire a database connection: %s", e)
            raise StorageUnavailable(f"Could not acquire a database connection: {e}", cause=e) from e

        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[psycopg.Connection]:
        """
        Run every statement issued inside the block on one connection and
        one transaction.

        Usage:
            with store.transaction():
                rows = store.query("SELECT ... FOR UPDATE", (...))
                store.update("stocks", rows[0]["id"], {...})
        """
        with self.connection() as conn:
            with conn.transaction():
                previous = getattr(self._local, "conn", None)
                self._local.conn = conn
                try:
                    yield conn
                finally:
                    self._local.conn = previous

    # =========================================================================
    # Query Helpers
    # =========================================================================

    def query(self, query: str | sql.Composable, params: Iterable[Any] | None = None) -> list[dict[str, Any]]:
        """
        Execute one parameterized statement and return its rows.

        Args:
            query: SQL with %s placeholders
            params: Parameter values

        Returns:
            List of dicts, empty list if no rows matched or the statement
            returns none

        Raises:
            QueryError: On any execution failure, with the driver error as cause
            StorageUnavailable: If no connection could be acquired
        """
        try:
            with self.connection() as conn:
                # A savepoint when conn is already in a transaction
                with conn.transaction():
                    with conn.cursor(row_factory=dict_row) as cur:
                        cur.execute(query, params)
                        return cur.fetchall() if cur.description else []
        except psycopg.Error as e:
            logger.error("Database query error: %s", e)
            raise QueryError(str(e), cause=e) from e

    def _check_identifiers(self, table: str, columns: Iterable[str] = ()) -> None:
        known = TABLES.get(table)
        if known is None:
            raise ValueError(f"Unknown table: {table}")
        unknown = [c for c in columns if c not in known]
        if unknown:
            raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")

    def find_by_id(self, table: str, id: int) -> dict[str, Any] | None:
        """Return the row with primary key ``id``, or None."""
        self._check_identifiers(table)
        rows = self.query(
            sql.SQL("SELECT * FROM {} WHERE id = %s").format(sql.Identifier(table)),
            (id,),
        )
        return rows[0] if rows else None

    def find_all(self, table: str, limit: int = 100, offset: int = 0) -> list[dict[str, Any]]:
        """Return up to ``limit`` rows starting at ``offset``, ordered by id."""
        self._check_identifiers(table)
        limit = max(int(limit), 0)
        offset = max(int(offset), 0)
        return self.query(
            sql.SQL("SELECT * FROM {} ORDER BY id LIMIT %s OFFSET %s").format(sql.Identifier(table)),
            (limit, offset),
        )

    def create(
        self,
        table: str,
        fields: Mapping[str, Any],
        on_conflict: str | None = None,
    ) -> dict[str, Any]:
        """
        Insert one row and return it as stored, including its id.

        Args:
            table: Table name
            fields: Column -> value mapping
            on_conflict: Unique column; when given, an existing row with the
                same value is updated with the remaining fields instead

        Raises:
            QueryError: On constraint violations and other failures
        """
        if not fields:
            raise ValueError("create() requires at least one field")
        columns = list(fields)
        self._check_identifiers(table, columns)

        query = sql.SQL("INSERT INTO {table} ({columns}) VALUES ({placeholders})").format(
            table=sql.Identifier(table),
            columns=sql.SQL(", ").join(map(sql.Identifier, columns)),
            placeholders=sql.SQL(", ").join(sql.Placeholder() * len(columns)),
        )

        if on_conflict is not None:
            self._check_identifiers(table, [on_conflict])
            # Always update something so RETURNING yields the existing row
            targets = [c for c in columns if c != on_conflict] or [on_conflict]
            query += sql.SQL(" ON CONFLICT ({key}) DO UPDATE SET {assignments}").format(
                key=sql.Identifier(on_conflict),
                assignments=sql.SQL(", ").join(
                    sql.SQL("{col} = EXCLUDED.{col}").format(col=sql.Identifier(c)) for c in targets
                ),
            )

        query += sql.SQL(" RETURNING *")
        rows = self.query(query, list(fields.values()))
        return rows[0]

    def update(self, table: str, id: int, fields: Mapping[str, Any]) -> dict[str, Any]:
        """
        Update row ``id`` with ``fields``.

        Returns ``{"id": id, **fields}``. The row is not read back, so the
        result is an echo of the request rather than the stored state.
        """
        if not fields:
            raise ValueError("update() requires at least one field")
        columns = list(fields)
        self._check_identifiers(table, columns)

        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s").format(
            table=sql.Identifier(table),
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns
            ),
        )
        self.query(query, [*fields.values(), id])
        return {"id": id, **fields}

    def delete(self, table: str, id: int) -> dict[str, Any]:
        """Delete row ``id`` and acknowledge with its id."""
        self._check_identifiers(table)
        self.query(sql.SQL("DELETE FROM {} WHERE id = %s").format(sql.Identifier(table)), (id,))
        return {"id": id}
