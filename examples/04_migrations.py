"""
Example 04: Migrations

This example demonstrates forward-only migrations with MigrationManager.
"""

import tempfile
from pathlib import Path

from laju_db import Database, MigrationManager
from laju_db.core.config import DatabaseSettings


def main():
    workdir = Path(tempfile.mkdtemp())
    migrations_dir = workdir / "migrations"
    migrations_dir.mkdir()

    # Create migration files
    (migrations_dir / "001_create_users.sql").write_text(
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT NOT NULL)"
    )
    (migrations_dir / "002_add_users_active.sql").write_text(
        "ALTER TABLE users ADD COLUMN active INTEGER DEFAULT 1"
    )
    (migrations_dir / "003_create_orders.sql").write_text(
        "CREATE TABLE orders (id INTEGER PRIMARY KEY, "
        "user_id INTEGER NOT NULL REFERENCES users(id), total REAL NOT NULL)"
    )

    settings = DatabaseSettings(
        _env_file=None, client="sqlite3", filename=str(workdir / "data" / "app.sqlite3")
    )
    with Database.from_stage("development", settings) as db:
        manager = MigrationManager(db, migrations_dir)

        print("=== Migration Management ===\n")

        print("1. Check pending migrations:")
        pending = manager.pending()
        print(f"   Pending migrations: {len(pending)}")
        for migration in pending:
            print(f"   - {migration.version}: {migration.description}")
        print()

        print("2. Apply migrations:")
        for migration in manager.apply():
            print(f"   Applied {migration.version}_{migration.description}")
        print(f"   Current version: {manager.current_version()}\n")

        print("3. Apply again (nothing pending):")
        print(f"   Applied: {len(manager.apply())}\n")

        columns = db.fetch_all("PRAGMA table_info(users)")
        print(f"users columns: {[c['name'] for c in columns]}")


if __name__ == "__main__":
    main()
