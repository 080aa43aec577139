"""Backend-specific tuning applied right after a database is opened.

Only SQLite has tuning today. The SQLite adapters run the PRAGMAs on every
connection they open, and ``apply_database_optimizations`` runs them again
on a pooled connection of a freshly opened database. Each PRAGMA is
attempted on its own and a failure is logged, never raised, so a read-only
filesystem or an exotic build still leaves a usable database.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from laju_db.core.database import AsyncDatabase, Database

logger = logging.getLogger(__name__)

SQLITE_PRAGMAS: tuple[str, ...] = (
    # WAL lets readers proceed while a writer is active
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA foreign_keys = ON",
    # ms to wait on a locked database before SQLITE_BUSY
    "PRAGMA busy_timeout = 5000",
)


def apply_sqlite_pragmas(execute: Callable[[str], Any]) -> int:
    """Run every SQLite PRAGMA through ``execute``. Returns how many succeeded."""
    applied = 0
    for pragma in SQLITE_PRAGMAS:
        try:
            execute(pragma)
        except Exception as e:
            logger.warning("Failed to apply SQLite PRAGMA %r: %s", pragma, e)
        else:
            applied += 1
    return applied


async def apply_sqlite_pragmas_async(execute: Callable[[str], Awaitable[Any]]) -> int:
    """Async counterpart of :func:`apply_sqlite_pragmas`."""
    applied = 0
    for pragma in SQLITE_PRAGMAS:
        try:
            await execute(pragma)
        except Exception as e:
            logger.warning("Failed to apply SQLite PRAGMA %r: %s", pragma, e)
        else:
            applied += 1
    return applied


def apply_database_optimizations(database: Database) -> int:
    """Apply backend tuning to a freshly opened database.

    PostgreSQL and MySQL have no tuning defined and get no statements.
    """
    if not database.is_sqlite():
        return 0
    with database.connection_manager.get_connection() as connection:
        return apply_sqlite_pragmas(connection.execute)


async def apply_database_optimizations_async(database: AsyncDatabase) -> int:
    """Apply backend tuning to a freshly opened async database."""
    if not database.is_sqlite():
        return 0
    async with database.connection_manager.get_connection() as connection:
        return await apply_sqlite_pragmas_async(connection.execute)
