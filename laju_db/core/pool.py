"""Single-connection pool for SQLite.

SQLite stages are pinned to one connection. ``SingleConnectionPool`` lends it
to one caller at a time; everyone else waits until it comes back or the
acquire timeout passes. A connection that is no longer usable when it is
returned is dropped, and the next caller gets a freshly opened one.

PostgreSQL and MySQL use their drivers' own pools (see ``laju_db.adapters``).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from laju_db.core.exceptions import PoolError

logger = logging.getLogger(__name__)


def _seconds(milliseconds: int | None) -> float | None:
    return None if milliseconds is None else milliseconds / 1000


def _exhausted(timeout: float | None) -> PoolError:
    if timeout is None:
        return PoolError("No connections available in pool (max=1)")
    return PoolError(f"Timed out after {timeout:g}s waiting for a connection (max=1)")


class SingleConnectionPool:
    """Thread-safe holder for one connection.

    Args:
        connect: Opens a new connection.
        close: Closes a connection.
        is_usable: Tells whether a returned connection can be lent again.
        acquire_timeout_ms: How long ``acquire`` waits. ``None`` fails at once.
    """

    def __init__(
        self,
        connect: Callable[[], Any],
        close: Callable[[Any], None],
        *,
        is_usable: Callable[[Any], bool],
        acquire_timeout_ms: int | None = None,
    ) -> None:
        self._connect = connect
        self._close = close
        self._is_usable = is_usable
        self._timeout = _seconds(acquire_timeout_ms)
        self._lock = threading.Lock()
        self._connection: Any = None
        self._lent = False
        self._closed = False

    @property
    def size(self) -> int:
        return 0 if self._connection is None else 1

    @property
    def idle_count(self) -> int:
        return 1 if self._connection is not None and not self._lent else 0

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> SingleConnectionPool:
        """Open the connection up front."""
        with self._lock:
            if self._connection is None:
                self._connection = self._connect()
        return self

    def acquire(self) -> Any:
        """Lend the connection, waiting while another caller holds it.

        Raises:
            PoolError: If the pool is closed or the wait exceeds the timeout.
        """
        if self._closed:
            raise PoolError("Pool is closed")
        if self._timeout is None:
            acquired = self._lock.acquire(blocking=False)
        else:
            acquired = self._lock.acquire(timeout=self._timeout)
        if not acquired:
            raise _exhausted(self._timeout)

        try:
            if self._closed:
                raise PoolError("Pool is closed")
            if self._connection is None:
                self._connection = self._connect()
        except BaseException:
            self._lock.release()
            raise
        self._lent = True
        return self._connection

    def release(self, connection: Any) -> None:
        """Take the connection back and wake the next waiter."""
        try:
            self._lent = False
            if self._closed or not self._is_usable(connection):
                if not self._closed:
                    logger.warning("Dropping unusable SQLite connection")
                self._connection = None
                self._close(connection)
        finally:
            self._lock.release()

    def close(self) -> None:
        """Close the connection now if idle, otherwise when it is released."""
        self._closed = True
        if self._lock.acquire(blocking=False):
            try:
                if self._connection is not None:
                    self._close(self._connection)
                    self._connection = None
            finally:
                self._lock.release()


class AsyncSingleConnectionPool:
    """asyncio counterpart of :class:`SingleConnectionPool`."""

    def __init__(
        self,
        connect: Callable[[], Awaitable[Any]],
        close: Callable[[Any], Awaitable[None]],
        *,
        is_usable: Callable[[Any], bool],
        acquire_timeout_ms: int | None = None,
    ) -> None:
        self._connect = connect
        self._close = close
        self._is_usable = is_usable
        self._timeout = _seconds(acquire_timeout_ms)
        self._lock = asyncio.Lock()
        self._connection: Any = None
        self._lent = False
        self._closed = False

    @property
    def size(self) -> int:
        return 0 if self._connection is None else 1

    @property
    def idle_count(self) -> int:
        return 1 if self._connection is not None and not self._lent else 0

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> AsyncSingleConnectionPool:
        async with self._lock:
            if self._connection is None:
                self._connection = await self._connect()
        return self

    async def acquire(self) -> Any:
        if self._closed:
            raise PoolError("Pool is closed")
        if self._timeout is None:
            if self._lock.locked():
                raise _exhausted(None)
            await self._lock.acquire()
        else:
            try:
                await asyncio.wait_for(self._lock.acquire(), self._timeout)
            except asyncio.TimeoutError:
                raise _exhausted(self._timeout) from None

        try:
            if self._closed:
                raise PoolError("Pool is closed")
            if self._connection is None:
                self._connection = await self._connect()
        except BaseException:
            self._lock.release()
            raise
        self._lent = True
        return self._connection

    async def release(self, connection: Any) -> None:
        try:
            self._lent = False
            if self._closed or not self._is_usable(connection):
                if not self._closed:
                    logger.warning("Dropping unusable SQLite connection")
                self._connection = None
                await self._close(connection)
        finally:
            self._lock.release()

    async def close(self) -> None:
        self._closed = True
        if not self._lock.locked():
            async with self._lock:
                if self._connection is not None:
                    await self._close(self._connection)
                    self._connection = None
