"""Query-builder service.

``Database`` runs inline SQL against the backend described by one stage.
Opening one applies the backend tuning from ``laju_db.core.optimizations``.
Every ``Database.from_stage``/``connection`` call opens an independent pool;
the caller owns it and should ``close()`` it (or use ``with``).

Each call outside ``transaction()`` commits before the connection goes back
to the pool, reads included, so no pooled connection is left inside an open
transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any, TypeVar

from laju_db.core.config import BackendDescriptor, DatabaseSettings, resolve_stage
from laju_db.core.connection import AsyncConnectionManager, ConnectionManager
from laju_db.core.exceptions import MultipleRowsError, QueryExecutionError
from laju_db.core.optimizations import (
    apply_database_optimizations,
    apply_database_optimizations_async,
)
from laju_db.core.params import coerce_params, normalize_params
from laju_db.core.transaction import (
    AsyncTransactionManager,
    TransactionManager,
    rows_to_dicts,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _first_value(row: Any) -> Any:
    if isinstance(row, dict):
        return next(iter(row.values()))
    return row[0]


def _rows(cursor: Any) -> list[dict[str, Any]]:
    if cursor.description is None:
        return []
    return rows_to_dicts(cursor.description, cursor.fetchall())


def _scalar(cursor: Any) -> Any:
    row = cursor.fetchone()
    return None if row is None else _first_value(row)


def _rowcount(cursor: Any) -> int:
    return int(cursor.rowcount)


async def _rows_async(cursor: Any) -> list[dict[str, Any]]:
    if cursor.description is None:
        return []
    return rows_to_dicts(cursor.description, await cursor.fetchall())


async def _scalar_async(cursor: Any) -> Any:
    row = await cursor.fetchone()
    return None if row is None else _first_value(row)


async def _rowcount_async(cursor: Any) -> int:
    return int(cursor.rowcount)


class Database:
    """Synchronous query-builder service bound to one stage."""

    def __init__(
        self,
        descriptor: BackendDescriptor,
        settings: DatabaseSettings | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._settings = settings
        self._connection_manager = ConnectionManager(descriptor)
        self._paramstyle = self._connection_manager.adapter.paramstyle

    @classmethod
    def from_stage(cls, stage: str, settings: DatabaseSettings | None = None) -> Database:
        """Open a database for a stage and apply backend tuning.

        Args:
            stage: Stage name (development, production, test).
            settings: Settings snapshot; the environment is read when omitted.
        """
        settings = settings if settings is not None else DatabaseSettings()
        database = cls(resolve_stage(stage, settings), settings)
        apply_database_optimizations(database)
        logger.debug("Opened %s database for stage '%s'", database.client, stage)
        return database

    def connection(self, stage: str) -> Database:
        """Open a new, independent database for another stage."""
        return type(self).from_stage(stage, self._settings)

    @property
    def descriptor(self) -> BackendDescriptor:
        return self._descriptor

    @property
    def client(self) -> str:
        return self._descriptor.client

    @property
    def connection_manager(self) -> ConnectionManager:
        return self._connection_manager

    def is_sqlite(self) -> bool:
        return self._descriptor.is_sqlite

    def _run(self, sql: str, params: Any, consume: Callable[[Any], T]) -> T:
        sql = normalize_params(sql, self._paramstyle)
        with self._connection_manager.get_connection() as conn:
            try:
                cursor = self._connection_manager.adapter.execute(
                    conn, sql, coerce_params(params)
                )
                result = consume(cursor)
                conn.commit()
            except Exception as e:
                with suppress(Exception):
                    conn.rollback()
                raise QueryExecutionError(sql, str(e)) from e
            return result

    def fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        """Fetch a single row.

        Returns None if zero rows match.
        Raises MultipleRowsError if more than one row matches.
        """
        rows = self.fetch_all(sql, params)
        if len(rows) == 0:
            return None
        if len(rows) > 1:
            raise MultipleRowsError(sql, len(rows))
        return rows[0]

    def fetch_all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        """Fetch all matching rows."""
        return self._run(sql, params, _rows)

    def fetch_scalar(self, sql: str, params: Any = None) -> Any:
        """Fetch a single scalar value (first column of first row)."""
        return self._run(sql, params, _scalar)

    def execute(self, sql: str, params: Any = None) -> int:
        """Execute a write statement and commit. Returns affected row count."""
        return self._run(sql, params, _rowcount)

    def raw(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        """Execute any statement, commit, and return whatever rows it produced."""
        return self._run(sql, params, _rows)

    def transaction(self) -> TransactionManager:
        """Create a new transaction context manager."""
        return TransactionManager(self._connection_manager)

    def close(self) -> None:
        """Close every pooled connection."""
        self._connection_manager.close_pool()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<Database stage={self._descriptor.stage!r} client={self.client!r}>"


class AsyncDatabase:
    """Asynchronous query-builder service bound to one stage."""

    def __init__(
        self,
        descriptor: BackendDescriptor,
        settings: DatabaseSettings | None = None,
    ) -> None:
        self._descriptor = descriptor
        self._settings = settings
        self._connection_manager = AsyncConnectionManager(descriptor)
        self._paramstyle = self._connection_manager.adapter.paramstyle

    @classmethod
    async def from_stage(
        cls, stage: str, settings: DatabaseSettings | None = None
    ) -> AsyncDatabase:
        """Open an async database for a stage and apply backend tuning."""
        settings = settings if settings is not None else DatabaseSettings()
        database = cls(resolve_stage(stage, settings), settings)
        await apply_database_optimizations_async(database)
        logger.debug("Opened async %s database for stage '%s'", database.client, stage)
        return database

    async def connection(self, stage: str) -> AsyncDatabase:
        """Open a new, independent async database for another stage."""
        return await type(self).from_stage(stage, self._settings)

    @property
    def descriptor(self) -> BackendDescriptor:
        return self._descriptor

    @property
    def client(self) -> str:
        return self._descriptor.client

    @property
    def connection_manager(self) -> AsyncConnectionManager:
        return self._connection_manager

    def is_sqlite(self) -> bool:
        return self._descriptor.is_sqlite

    async def _run(
        self, sql: str, params: Any, consume: Callable[[Any], Awaitable[T]]
    ) -> T:
        sql = normalize_params(sql, self._paramstyle)
        async with self._connection_manager.get_connection() as conn:
            try:
                cursor = await self._connection_manager.adapter.execute_async(
                    conn, sql, coerce_params(params)
                )
                result = await consume(cursor)
                await conn.commit()
            except Exception as e:
                with suppress(Exception):
                    await conn.rollback()
                raise QueryExecutionError(sql, str(e)) from e
            return result

    async def fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        """Fetch a single row asynchronously."""
        rows = await self.fetch_all(sql, params)
        if len(rows) == 0:
            return None
        if len(rows) > 1:
            raise MultipleRowsError(sql, len(rows))
        return rows[0]

    async def fetch_all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        """Fetch all matching rows asynchronously."""
        return await self._run(sql, params, _rows_async)

    async def fetch_scalar(self, sql: str, params: Any = None) -> Any:
        """Fetch a single scalar value asynchronously."""
        return await self._run(sql, params, _scalar_async)

    async def execute(self, sql: str, params: Any = None) -> int:
        """Execute a write statement asynchronously and commit."""
        return await self._run(sql, params, _rowcount_async)

    async def raw(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        """Execute any statement, commit, and return whatever rows it produced."""
        return await self._run(sql, params, _rows_async)

    def transaction(self) -> AsyncTransactionManager:
        """Create a new async transaction context manager.

        Usage: ``async with database.transaction() as tx:``
        """
        return AsyncTransactionManager(self._connection_manager)

    async def close(self) -> None:
        """Close every pooled connection."""
        await self._connection_manager.close_pool()

    async def __aenter__(self) -> AsyncDatabase:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<AsyncDatabase stage={self._descriptor.stage!r} client={self.client!r}>"
