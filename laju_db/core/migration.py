"""Database migration management.

Manages versioned SQL migration files with numeric ordering,
incremental execution, and tracking of applied versions. Runs through
``Database`` so the same migration directory works on every backend.

Each migration and its tracking row commit together. On SQLite and
PostgreSQL a failed migration leaves no trace, DDL included. MySQL commits
DDL implicitly, so there only the tracking row is rolled back.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path

from laju_db.core.database import Database
from laju_db.core.exceptions import MigrationExecutionError, MigrationFileError

logger = logging.getLogger(__name__)

_MIGRATION_PATTERN = re.compile(r"^(\d+)_(.+)\.sql$")

# Portable across SQLite, PostgreSQL and MySQL
_CREATE_TRACKING_TABLE = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    version     VARCHAR(255) PRIMARY KEY,
    description VARCHAR(255) NOT NULL,
    applied_at  TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
)
"""


@dataclass(frozen=True)
class MigrationInfo:
    """Metadata about a single migration file."""

    version: str
    description: str
    file_path: Path
    applied: bool = False


class MigrationManager:
    """Manages forward-only SQL schema migrations.

    Migration files must follow: NNN_description.sql, one statement each.
    Applied migrations are tracked in the `schema_migrations` table.

    Args:
        database: Target database.
        migration_dir: Defaults to the descriptor's ``migrations_directory``.
    """

    def __init__(
        self,
        database: Database,
        migration_dir: Path | str | None = None,
    ) -> None:
        self._database = database
        if migration_dir is None:
            migration_dir = database.descriptor.migrations_directory
        self._migration_dir = Path(migration_dir)
        self._database.execute(_CREATE_TRACKING_TABLE)

    @property
    def migration_dir(self) -> Path:
        return self._migration_dir

    def _get_applied_versions(self) -> set[str]:
        rows = self._database.fetch_all("SELECT version FROM schema_migrations")
        return {str(row["version"]) for row in rows}

    def discover(self) -> list[MigrationInfo]:
        """Discover all migration files and their applied status."""
        if not self._migration_dir.exists():
            return []

        applied_versions = self._get_applied_versions()
        migrations: list[MigrationInfo] = []

        for file_path in sorted(self._migration_dir.glob("*.sql")):
            match = _MIGRATION_PATTERN.match(file_path.name)
            if not match:
                raise MigrationFileError(
                    file_path.name,
                    "Must match pattern NNN_description.sql",
                )

            version = match.group(1)
            migrations.append(
                MigrationInfo(
                    version=version,
                    description=match.group(2),
                    file_path=file_path,
                    applied=version in applied_versions,
                )
            )

        return sorted(migrations, key=lambda m: m.version)

    def pending(self) -> list[MigrationInfo]:
        """Return only unapplied migrations, sorted by version."""
        return [m for m in self.discover() if not m.applied]

    def applied(self) -> list[MigrationInfo]:
        """Return list of already-applied migrations."""
        return [m for m in self.discover() if m.applied]

    def apply(self) -> list[MigrationInfo]:
        """Apply all pending migrations in order.

        Stops on first failure. Returns list of successfully applied migrations.
        """
        applied: list[MigrationInfo] = []

        for migration in self.pending():
            sql = migration.file_path.read_text(encoding="utf-8")
            try:
                with self._database.transaction() as tx:
                    tx.execute(sql)
                    tx.execute(
                        "INSERT INTO schema_migrations (version, description) "
                        "VALUES (:version, :description)",
                        {"version": migration.version, "description": migration.description},
                    )
            except Exception as e:
                raise MigrationExecutionError(migration.version, str(e)) from e

            logger.info("Applied migration %s_%s", migration.version, migration.description)
            applied.append(
                MigrationInfo(
                    version=migration.version,
                    description=migration.description,
                    file_path=migration.file_path,
                    applied=True,
                )
            )

        return applied

    def current_version(self) -> str | None:
        """Return the version string of the last applied migration, or None."""
        return self._database.fetch_scalar(
            "SELECT version FROM schema_migrations ORDER BY version DESC LIMIT 1"
        )
