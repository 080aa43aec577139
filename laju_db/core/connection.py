"""Connection management.

ConnectionManager and AsyncConnectionManager pick the adapter for a
``BackendDescriptor`` and lend connections from the pool the adapter creates.
"""

from __future__ import annotations

import importlib
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import Any

from laju_db.core.config import BackendDescriptor
from laju_db.core.enums import DatabaseBackend
from laju_db.core.exceptions import AdapterError

# Adapter module mapping: backend → (module_path, sync_class, async_class)
_ADAPTER_MAP: dict[DatabaseBackend, tuple[str, str, str]] = {
    DatabaseBackend.SQLITE: (
        "laju_db.adapters.sqlite",
        "SqliteSyncAdapter",
        "SqliteAsyncAdapter",
    ),
    DatabaseBackend.POSTGRESQL: (
        "laju_db.adapters.postgresql",
        "PostgresqlSyncAdapter",
        "PostgresqlAsyncAdapter",
    ),
    DatabaseBackend.MYSQL: (
        "laju_db.adapters.mysql",
        "MysqlSyncAdapter",
        "MysqlAsyncAdapter",
    ),
}


def load_adapter(backend: DatabaseBackend, kind: str) -> Any:
    """Load a sync or async adapter for a backend."""
    if backend not in _ADAPTER_MAP:
        raise AdapterError(f"Unsupported database backend: {backend}")

    module_path, sync_cls_name, async_cls_name = _ADAPTER_MAP[backend]
    cls_name = sync_cls_name if kind == "sync" else async_cls_name

    try:
        module = importlib.import_module(module_path)
        return getattr(module, cls_name)()
    except (ImportError, AttributeError) as e:
        raise AdapterError(
            f"Failed to load {kind} adapter for '{backend.value}': {e}"
        ) from e


class ConnectionManager:
    """Synchronous connection manager using the SyncAdapter protocol."""

    def __init__(self, descriptor: BackendDescriptor) -> None:
        self.descriptor = descriptor
        self._adapter = load_adapter(descriptor.backend, "sync")
        self._pool: Any = None
        # Closed pool that may still have a connection lent out
        self._retired_pool: Any = None
        self._pool_lock = threading.Lock()

    @property
    def adapter(self) -> Any:
        return self._adapter

    @property
    def pool(self) -> Any:
        return self._pool

    def initialize_pool(self) -> Any:
        """Initialize the connection pool."""
        with self._pool_lock:
            if self._pool is None:
                self._pool = self._adapter.create_pool(self.descriptor)
        return self._pool

    def acquire(self) -> Any:
        return self._adapter.acquire_connection(self.initialize_pool())

    def release(self, connection: Any) -> None:
        pool = self._pool if self._pool is not None else self._retired_pool
        if pool is not None:
            self._adapter.release_connection(connection, pool)

    @contextmanager
    def get_connection(self):  # type: ignore[no-untyped-def]
        """Get a connection from the pool as a context manager."""
        connection = self.acquire()
        try:
            yield connection
        finally:
            self.release(connection)

    def close_pool(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            self._adapter.close_pool(self._pool)
            self._retired_pool, self._pool = self._pool, None


class AsyncConnectionManager:
    """Asynchronous connection manager using the AsyncAdapter protocol."""

    def __init__(self, descriptor: BackendDescriptor) -> None:
        self.descriptor = descriptor
        self._adapter = load_adapter(descriptor.backend, "async")
        self._pool: Any = None
        # Closed pool that may still have a connection lent out
        self._retired_pool: Any = None

    @property
    def adapter(self) -> Any:
        return self._adapter

    @property
    def pool(self) -> Any:
        return self._pool

    async def initialize_pool(self) -> Any:
        """Initialize the async connection pool."""
        if self._pool is None:
            self._pool = await self._adapter.create_pool_async(self.descriptor)
        return self._pool

    async def acquire(self) -> Any:
        pool = await self.initialize_pool()
        return await self._adapter.acquire_connection_async(pool)

    async def release(self, connection: Any) -> None:
        pool = self._pool if self._pool is not None else self._retired_pool
        if pool is not None:
            await self._adapter.release_connection_async(connection, pool)

    @asynccontextmanager
    async def get_connection(self):  # type: ignore[no-untyped-def]
        """Get an async connection from the pool as an async context manager."""
        connection = await self.acquire()
        try:
            yield connection
        finally:
            await self.release(connection)

    async def close_pool(self) -> None:
        """Close the async connection pool."""
        if self._pool is not None:
            await self._adapter.close_pool_async(self._pool)
            self._retired_pool, self._pool = self._pool, None
