"""Native SQLite service.

A thin layer over ``sqlite3`` for code that wants plain SQL without the
query-builder service: cached statements, dict rows, and a transaction
wrapper. It exists only when the active stage uses SQLite. Otherwise
:func:`create_native_service` returns an :class:`UnavailableSqliteService`
whose operations all raise.

Callers can branch on the variant explicitly::

    service = create_native_service(descriptor)
    match service:
        case SqliteService():
            rows = service.all("SELECT * FROM users")
        case UnavailableSqliteService(client=client):
            ...

Unlike the query-builder path, driver errors are logged and re-raised
unchanged.

One connection is shared by every thread. Each call holds the service lock,
and ``atomic`` holds it for the whole block, so other threads wait rather
than interleave with an open transaction.

The service keeps one entry per distinct SQL text and never evicts. The
compiled statements behind them live in sqlite3's per-connection LRU cache,
which holds ``STATEMENT_CACHE_SIZE`` entries; text beyond that is recompiled
on its next use.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, TypeVar

from laju_db.adapters.sqlite import ensure_parent_dir
from laju_db.core.config import BackendDescriptor
from laju_db.core.exceptions import ServiceUnavailableError, TransactionStateError
from laju_db.core.optimizations import apply_sqlite_pragmas
from laju_db.core.params import bind_params

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATEMENT_CACHE_SIZE = 1024


@dataclass(frozen=True)
class RunResult:
    """Outcome of a write statement."""

    changes: int
    last_insert_rowid: int


class PreparedStatement:
    """One SQL text bound to one connection.

    ``sqlite3`` compiles statements on first execution and reuses the
    compiled form for identical text, so holding the text is enough to get
    the reuse.
    """

    __slots__ = ("_connection", "sql")

    def __init__(self, connection: sqlite3.Connection, sql: str) -> None:
        self._connection = connection
        self.sql = sql

    def _execute(self, params: Any) -> sqlite3.Cursor:
        return self._connection.execute(self.sql, bind_params(self.sql, params))

    def get(self, params: Any = ()) -> dict[str, Any] | None:
        cursor = self._execute(params)
        try:
            row = cursor.fetchone()
        finally:
            cursor.close()
        return dict(row) if row is not None else None

    def all(self, params: Any = ()) -> list[dict[str, Any]]:
        cursor = self._execute(params)
        try:
            return [dict(row) for row in cursor.fetchall()]
        finally:
            cursor.close()

    def run(self, params: Any = ()) -> RunResult:
        cursor = self._execute(params)
        try:
            return RunResult(
                changes=cursor.rowcount if cursor.rowcount >= 0 else 0,
                last_insert_rowid=cursor.lastrowid or 0,
            )
        finally:
            cursor.close()


class SqliteService:
    """Native service over an open SQLite connection."""

    is_available = True

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._statements: dict[str, PreparedStatement] = {}
        self._lock = threading.RLock()

    @classmethod
    def open(cls, filename: str) -> SqliteService:
        """Open ``filename`` in autocommit mode and apply the SQLite PRAGMAs."""
        ensure_parent_dir(filename)
        # isolation_level=None: statements autocommit unless inside atomic()
        connection = sqlite3.connect(
            filename,
            isolation_level=None,
            check_same_thread=False,
            cached_statements=STATEMENT_CACHE_SIZE,
        )
        connection.row_factory = sqlite3.Row
        apply_sqlite_pragmas(connection.execute)
        return cls(connection)

    @property
    def cached_statements(self) -> int:
        return len(self._statements)

    def _prepare(self, sql: str) -> PreparedStatement:
        return PreparedStatement(self._connection, sql)

    def _statement(self, sql: str) -> PreparedStatement:
        # Keyed by exact text: no whitespace or case normalization
        stmt = self._statements.get(sql)
        if stmt is None:
            stmt = self._prepare(sql)
            self._statements[sql] = stmt
        return stmt

    def get(self, sql: str, params: Any = ()) -> dict[str, Any] | None:
        """Return the first row, or None if the query matches nothing.

        Args:
            sql: Query with ``?`` or ``:name`` placeholders.
            params: Sequence for ``?``, mapping for ``:name``.
        """
        try:
            with self._lock:
                return self._statement(sql).get(params)
        except Exception:
            logger.exception("SQLite get error: %s", sql)
            raise

    def all(self, sql: str, params: Any = ()) -> list[dict[str, Any]]:
        """Return every matching row."""
        try:
            with self._lock:
                return self._statement(sql).all(params)
        except Exception:
            logger.exception("SQLite all error: %s", sql)
            raise

    def run(self, sql: str, params: Any = ()) -> RunResult:
        """Execute a write statement and report affected rows and last rowid."""
        try:
            with self._lock:
                return self._statement(sql).run(params)
        except Exception:
            logger.exception("SQLite run error: %s", sql)
            raise

    @contextmanager
    def atomic(self) -> Iterator[SqliteService]:
        """Commit the enclosed statements together, or roll all of them back.

        Other threads block until the block exits.
        """
        with self._lock:
            if self._connection.in_transaction:
                raise TransactionStateError("active", "begin nested")
            self._connection.execute("BEGIN")
            try:
                yield self
            except BaseException:
                self._connection.execute("ROLLBACK")
                raise
            else:
                self._connection.execute("COMMIT")

    def transaction(self, fn: Callable[[SqliteService], T]) -> T:
        """Run ``fn(self)`` atomically and return its result."""
        with self.atomic() as service:
            return fn(service)

    def get_database(self) -> sqlite3.Connection:
        """Raw ``sqlite3`` connection for anything not covered here."""
        return self._connection

    def close(self) -> None:
        with self._lock:
            self._statements.clear()
            self._connection.close()


@dataclass(frozen=True)
class UnavailableSqliteService:
    """Stand-in used when the active backend is not SQLite."""

    client: str
    is_available = False

    def _unavailable(self) -> ServiceUnavailableError:
        return ServiceUnavailableError(self.client)

    def get(self, sql: str, params: Any = ()) -> dict[str, Any] | None:
        raise self._unavailable()

    def all(self, sql: str, params: Any = ()) -> list[dict[str, Any]]:
        raise self._unavailable()

    def run(self, sql: str, params: Any = ()) -> RunResult:
        raise self._unavailable()

    def atomic(self) -> Any:
        raise self._unavailable()

    def transaction(self, fn: Callable[[Any], T]) -> T:
        raise self._unavailable()

    def get_database(self) -> None:
        return None

    def close(self) -> None:
        pass


NativeService = SqliteService | UnavailableSqliteService


def create_native_service(descriptor: BackendDescriptor) -> NativeService:
    """Open the native service for a descriptor, or the stub for other backends."""
    if descriptor.is_sqlite:
        return SqliteService.open(descriptor.require("filename"))

    logger.info(
        "SQLite native service is disabled (current client: %s). "
        "Use Database service for database operations.",
        descriptor.client,
    )
    return UnavailableSqliteService(descriptor.client)
