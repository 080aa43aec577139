"""Database backend enumeration and client-token lookup."""

from __future__ import annotations

from enum import Enum


class DatabaseBackend(Enum):
    """Supported database backends."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"


# DB_CLIENT token -> backend. Anything else falls back to SQLite.
CLIENT_TOKENS: dict[str, DatabaseBackend] = {
    "pg": DatabaseBackend.POSTGRESQL,
    "postgresql": DatabaseBackend.POSTGRESQL,
    "mysql": DatabaseBackend.MYSQL,
    "mysql2": DatabaseBackend.MYSQL,
    "better-sqlite3": DatabaseBackend.SQLITE,
    "sqlite3": DatabaseBackend.SQLITE,
}

# Canonical client name reported for each backend.
CLIENT_NAMES: dict[DatabaseBackend, str] = {
    DatabaseBackend.POSTGRESQL: "pg",
    DatabaseBackend.MYSQL: "mysql2",
    DatabaseBackend.SQLITE: "sqlite3",
}
