"""Direct, non-query-builder access to the embedded SQLite engine."""

from laju_db.native.sqlite import (
    NativeService,
    RunResult,
    SqliteService,
    UnavailableSqliteService,
    create_native_service,
)

__all__ = [
    "NativeService",
    "RunResult",
    "SqliteService",
    "UnavailableSqliteService",
    "create_native_service",
]
