"""MySQL adapter - sync (mysql-connector-python) and async (aiomysql).

Both use the driver's pool. mysql-connector's ``MySQLConnectionPool`` opens
all of its connections up front, caps them at ``CNX_POOL_MAXSIZE`` and fails
at once when exhausted; aiomysql's pool grows from ``minsize`` to ``maxsize``
and makes callers wait.
"""

from __future__ import annotations

from typing import Any

from laju_db.core.config import BackendDescriptor, ConnectionParams
from laju_db.core.exceptions import PoolError


class MysqlSyncAdapter:
    """Synchronous MySQL adapter using mysql-connector-python."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    def create_pool(self, descriptor: BackendDescriptor) -> Any:
        """Create a ``MySQLConnectionPool`` of ``pool.max`` connections."""
        from mysql.connector import pooling

        params: ConnectionParams = descriptor.require("params")
        return pooling.MySQLConnectionPool(
            pool_size=min(descriptor.pool.max, pooling.CNX_POOL_MAXSIZE),
            host=params.host,
            port=params.port,
            user=params.user,
            password=params.password,
            database=params.database,
        )

    def acquire_connection(self, pool: Any) -> Any:
        from mysql.connector import errors

        try:
            return pool.get_connection()
        except errors.PoolError as e:
            raise PoolError(str(e)) from e

    def release_connection(self, connection: Any, pool: Any) -> None:
        # Closing a pooled connection hands it back to its pool
        connection.close()

    def close_pool(self, pool: Any) -> None:
        # mysql-connector has no public close; this disconnects the idle ones
        pool._remove_connections()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> Any:
        """Execute SQL and return a buffered cursor with dictionary results."""
        cursor = connection.cursor(dictionary=True, buffered=True)
        cursor.execute(sql, params or ())
        return cursor


class MysqlAsyncAdapter:
    """Asynchronous MySQL adapter using aiomysql."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    async def create_pool_async(self, descriptor: BackendDescriptor) -> Any:
        """Create an ``aiomysql`` pool sized by the descriptor."""
        import aiomysql

        params: ConnectionParams = descriptor.require("params")
        pool = descriptor.pool
        return await aiomysql.create_pool(
            minsize=pool.min,
            maxsize=pool.max,
            pool_recycle=pool.idle_timeout_ms // 1000 if pool.idle_timeout_ms else -1,
            host=params.host,
            port=params.port,
            user=params.user,
            password=params.password,
            db=params.database,
        )

    async def acquire_connection_async(self, pool: Any) -> Any:
        return await pool.acquire()

    async def release_connection_async(self, connection: Any, pool: Any) -> None:
        await pool.release(connection)

    async def close_pool_async(self, pool: Any) -> None:
        pool.close()
        await pool.wait_closed()

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> Any:
        """Execute SQL asynchronously and return a DictCursor."""
        import aiomysql

        cursor = await connection.cursor(aiomysql.DictCursor)
        await cursor.execute(sql, params or ())
        return cursor
