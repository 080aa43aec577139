"""PostgreSQL adapter - sync and async using psycopg (v3+) and psycopg_pool."""

from __future__ import annotations

from typing import Any

from laju_db.core.config import BackendDescriptor, ConnectionParams, PoolConfig
from laju_db.core.exceptions import PoolError


def build_conninfo(descriptor: BackendDescriptor) -> str:
    """Return ``DATABASE_URL`` as-is, or build a libpq string from the fields."""
    if descriptor.url is not None:
        return descriptor.url
    params: ConnectionParams = descriptor.require("params")
    parts = [
        f"host={params.host}",
        f"port={params.port}",
        f"user={params.user}",
    ]
    if params.password:
        parts.append(f"password={params.password}")
    parts.append(f"dbname={params.database}")
    return " ".join(parts)


def pool_options(config: PoolConfig) -> dict[str, Any]:
    """Map pool bounds onto psycopg_pool keyword arguments."""
    options: dict[str, Any] = {"min_size": config.min, "max_size": config.max}
    if config.acquire_timeout_ms is not None:
        options["timeout"] = config.acquire_timeout_ms / 1000
    if config.idle_timeout_ms is not None:
        options["max_idle"] = config.idle_timeout_ms / 1000
    return options


class PostgresqlSyncAdapter:
    """Synchronous PostgreSQL adapter using psycopg (v3+)."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    def create_pool(self, descriptor: BackendDescriptor) -> Any:
        import psycopg.rows
        import psycopg_pool

        return psycopg_pool.ConnectionPool(
            build_conninfo(descriptor),
            kwargs={"row_factory": psycopg.rows.dict_row},
            open=True,
            **pool_options(descriptor.pool),
        )

    def acquire_connection(self, pool: Any) -> Any:
        import psycopg_pool

        try:
            return pool.getconn()
        except psycopg_pool.PoolTimeout as e:
            raise PoolError(str(e)) from e

    def release_connection(self, connection: Any, pool: Any) -> None:
        pool.putconn(connection)

    def close_pool(self, pool: Any) -> None:
        pool.close()

    def execute(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> Any:
        return connection.execute(sql, params)


class PostgresqlAsyncAdapter:
    """Asynchronous PostgreSQL adapter using psycopg (v3+) async support."""

    @property
    def paramstyle(self) -> str:
        return "pyformat"

    async def create_pool_async(self, descriptor: BackendDescriptor) -> Any:
        import psycopg.rows
        import psycopg_pool

        pool = psycopg_pool.AsyncConnectionPool(
            build_conninfo(descriptor),
            kwargs={"row_factory": psycopg.rows.dict_row},
            open=False,
            **pool_options(descriptor.pool),
        )
        await pool.open()
        return pool

    async def acquire_connection_async(self, pool: Any) -> Any:
        import psycopg_pool

        try:
            return await pool.getconn()
        except psycopg_pool.PoolTimeout as e:
            raise PoolError(str(e)) from e

    async def release_connection_async(self, connection: Any, pool: Any) -> None:
        await pool.putconn(connection)

    async def close_pool_async(self, pool: Any) -> None:
        await pool.close()

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> Any:
        return await connection.execute(sql, params)
