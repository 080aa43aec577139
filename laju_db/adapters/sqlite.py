"""SQLite adapter - sync (sqlite3 stdlib) and async (aiosqlite)."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from laju_db.core.config import BackendDescriptor
from laju_db.core.optimizations import apply_sqlite_pragmas, apply_sqlite_pragmas_async
from laju_db.core.pool import AsyncSingleConnectionPool, SingleConnectionPool

MEMORY = ":memory:"


def ensure_parent_dir(filename: str) -> None:
    """Create the directory holding a SQLite file (``./data`` by default)."""
    if filename == MEMORY or filename.startswith("file:"):
        return
    Path(filename).parent.mkdir(parents=True, exist_ok=True)


def is_open(connection: Any) -> bool:
    """False once a sqlite3 or aiosqlite connection has been closed."""
    try:
        connection.total_changes
    except (sqlite3.ProgrammingError, ValueError):
        return False
    return True


class SqliteSyncAdapter:
    """Synchronous SQLite adapter using stdlib sqlite3."""

    @property
    def paramstyle(self) -> str:
        return "named"

    def connect(self, descriptor: BackendDescriptor) -> sqlite3.Connection:
        """Open a connection to the descriptor's file and apply the PRAGMAs."""
        filename = descriptor.require("filename")
        ensure_parent_dir(filename)
        # The pool lends the connection to one thread at a time
        conn = sqlite3.connect(filename, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        apply_sqlite_pragmas(conn.execute)
        return conn

    def create_pool(self, descriptor: BackendDescriptor) -> SingleConnectionPool:
        """Open the stage's single connection."""
        pool = SingleConnectionPool(
            lambda: self.connect(descriptor),
            lambda conn: conn.close(),
            is_usable=is_open,
            acquire_timeout_ms=descriptor.pool.acquire_timeout_ms,
        )
        return pool.open()

    def acquire_connection(self, pool: SingleConnectionPool) -> sqlite3.Connection:
        return pool.acquire()

    def release_connection(
        self, connection: sqlite3.Connection, pool: SingleConnectionPool
    ) -> None:
        pool.release(connection)

    def close_pool(self, pool: SingleConnectionPool) -> None:
        pool.close()

    def execute(
        self,
        connection: sqlite3.Connection,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> sqlite3.Cursor:
        """Execute SQL and return a cursor."""
        return connection.execute(sql, params or {})


class SqliteAsyncAdapter:
    """Asynchronous SQLite adapter using aiosqlite."""

    @property
    def paramstyle(self) -> str:
        return "named"

    async def connect_async(self, descriptor: BackendDescriptor) -> Any:
        """Open an async connection to the descriptor's file and apply the PRAGMAs."""
        import aiosqlite

        filename = descriptor.require("filename")
        ensure_parent_dir(filename)
        conn = await aiosqlite.connect(filename)
        conn.row_factory = aiosqlite.Row
        await apply_sqlite_pragmas_async(conn.execute)
        return conn

    async def create_pool_async(
        self, descriptor: BackendDescriptor
    ) -> AsyncSingleConnectionPool:
        """Open the stage's single async connection."""

        async def close(conn: Any) -> None:
            await conn.close()

        pool = AsyncSingleConnectionPool(
            lambda: self.connect_async(descriptor),
            close,
            is_usable=is_open,
            acquire_timeout_ms=descriptor.pool.acquire_timeout_ms,
        )
        return await pool.open()

    async def acquire_connection_async(self, pool: AsyncSingleConnectionPool) -> Any:
        return await pool.acquire()

    async def release_connection_async(
        self, connection: Any, pool: AsyncSingleConnectionPool
    ) -> None:
        await pool.release(connection)

    async def close_pool_async(self, pool: AsyncSingleConnectionPool) -> None:
        await pool.close()

    async def execute_async(
        self,
        connection: Any,
        sql: str,
        params: dict[str, Any] | tuple[Any, ...] | None = None,
    ) -> Any:
        """Execute SQL asynchronously and return a cursor."""
        return await connection.execute(sql, params or {})
