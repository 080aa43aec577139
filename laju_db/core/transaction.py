"""Transaction management.

Provides context managers for executing multiple SQL statements atomically.
Auto-commits on success, auto-rolls-back on exception.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from laju_db.core.exceptions import TransactionStateError
from laju_db.core.params import coerce_params, normalize_params


class _TxState(Enum):
    IDLE = "idle"
    ACTIVE = "active"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


def rows_to_dicts(description: Any, rows: list[Any]) -> list[dict[str, Any]]:
    """Convert fetched rows to a list of dicts.

    Handles both tuple-like rows and dict-like rows from different adapters.
    """
    if description is None or not rows:
        return []

    # psycopg dict_row and MySQL dict cursors already yield dicts
    if isinstance(rows[0], dict):
        return [dict(row) for row in rows]

    columns = [desc[0] for desc in description]
    return [dict(zip(columns, row, strict=True)) for row in rows]


class TransactionManager:
    """Synchronous transaction context manager.

    Holds one pooled connection for its whole lifetime and hands it back on
    exit.
    """

    def __init__(self, connection_manager: Any) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._paramstyle: str = self._adapter.paramstyle
        self._connection: Any = None
        self._state = _TxState.IDLE
        # sqlite3 opens transactions implicitly only before DML, so DDL would
        # run outside one
        self._begins_explicitly: bool = connection_manager.descriptor.is_sqlite

    def __enter__(self) -> TransactionManager:
        self._connection = self._connection_manager.acquire()
        if self._begins_explicitly:
            try:
                self._adapter.execute(self._connection, "BEGIN")
            except BaseException:
                self._connection_manager.release(self._connection)
                raise
        self._state = _TxState.ACTIVE
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if self._state == _TxState.ACTIVE:
                if exc_type is not None:
                    self._connection.rollback()
                    self._state = _TxState.ROLLED_BACK
                else:
                    self._connection.commit()
                    self._state = _TxState.COMMITTED
        finally:
            self._connection_manager.release(self._connection)

    def _cursor(self, sql: str, params: Any) -> Any:
        self._check_active()
        sql = normalize_params(sql, self._paramstyle)
        return self._adapter.execute(self._connection, sql, coerce_params(params))

    def execute(self, sql: str, params: Any = None) -> int:
        """Execute a write statement within this transaction."""
        return int(self._cursor(sql, params).rowcount)

    def fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        """Fetch the first row within transaction context."""
        cursor = self._cursor(sql, params)
        rows = rows_to_dicts(cursor.description, cursor.fetchall())
        if not rows:
            return None
        return rows[0]

    def fetch_all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        """Fetch all rows within transaction context."""
        cursor = self._cursor(sql, params)
        return rows_to_dicts(cursor.description, cursor.fetchall())

    def commit(self) -> None:
        """Explicitly commit the transaction."""
        if self._state == _TxState.ROLLED_BACK:
            raise TransactionStateError("rolled_back", "commit")
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "commit")
        self._connection.commit()
        self._state = _TxState.COMMITTED

    def rollback(self) -> None:
        """Explicitly rollback the transaction."""
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "rollback")
        self._connection.rollback()
        self._state = _TxState.ROLLED_BACK

    def _check_active(self) -> None:
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "execute")


class AsyncTransactionManager:
    """Asynchronous transaction context manager."""

    def __init__(self, connection_manager: Any) -> None:
        self._connection_manager = connection_manager
        self._adapter = connection_manager.adapter
        self._paramstyle: str = self._adapter.paramstyle
        self._connection: Any = None
        self._state = _TxState.IDLE
        # sqlite3 opens transactions implicitly only before DML, so DDL would
        # run outside one
        self._begins_explicitly: bool = connection_manager.descriptor.is_sqlite

    async def __aenter__(self) -> AsyncTransactionManager:
        self._connection = await self._connection_manager.acquire()
        if self._begins_explicitly:
            try:
                await self._adapter.execute_async(self._connection, "BEGIN")
            except BaseException:
                await self._connection_manager.release(self._connection)
                raise
        self._state = _TxState.ACTIVE
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if self._state == _TxState.ACTIVE:
                if exc_type is not None:
                    await self._connection.rollback()
                    self._state = _TxState.ROLLED_BACK
                else:
                    await self._connection.commit()
                    self._state = _TxState.COMMITTED
        finally:
            await self._connection_manager.release(self._connection)

    async def _cursor(self, sql: str, params: Any) -> Any:
        self._check_active()
        sql = normalize_params(sql, self._paramstyle)
        return await self._adapter.execute_async(self._connection, sql, coerce_params(params))

    async def execute(self, sql: str, params: Any = None) -> int:
        """Execute a write statement within this async transaction."""
        cursor = await self._cursor(sql, params)
        return int(cursor.rowcount)

    async def fetch_one(self, sql: str, params: Any = None) -> dict[str, Any] | None:
        """Fetch the first row within async transaction context."""
        rows = await self.fetch_all(sql, params)
        if not rows:
            return None
        return rows[0]

    async def fetch_all(self, sql: str, params: Any = None) -> list[dict[str, Any]]:
        """Fetch all rows within async transaction context."""
        cursor = await self._cursor(sql, params)
        return rows_to_dicts(cursor.description, await cursor.fetchall())

    async def commit(self) -> None:
        """Explicitly commit the async transaction."""
        if self._state == _TxState.ROLLED_BACK:
            raise TransactionStateError("rolled_back", "commit")
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "commit")
        await self._connection.commit()
        self._state = _TxState.COMMITTED

    async def rollback(self) -> None:
        """Explicitly rollback the async transaction."""
        if self._state == _TxState.COMMITTED:
            raise TransactionStateError("committed", "rollback")
        await self._connection.rollback()
        self._state = _TxState.ROLLED_BACK

    def _check_active(self) -> None:
        if self._state != _TxState.ACTIVE:
            raise TransactionStateError(self._state.value, "execute")
