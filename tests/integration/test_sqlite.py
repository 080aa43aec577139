"""Integration test for the SQLite workflow.

Covers: stage resolution from the environment, Database queries and
transactions, migrations, and the native service sharing one file.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from laju_db import (
    Database,
    DatabaseContext,
    MigrationManager,
    SqliteService,
    get_context,
    reset_context,
)
from laju_db.core.exceptions import QueryExecutionError

# --- Fixtures ---


@pytest.fixture
def db_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "storage" / "app.sqlite3"
    monkeypatch.setenv("DB_CLIENT", "sqlite3")
    monkeypatch.setenv("DB_FILENAME", str(path))
    return path


@pytest.fixture
def migrations(tmp_path: Path) -> Path:
    d = tmp_path / "migrations"
    d.mkdir()
    (d / "001_create_users.sql").write_text(
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL, email TEXT NOT NULL)"
    )
    (d / "002_create_orders.sql").write_text(
        "CREATE TABLE orders (id INTEGER PRIMARY KEY, "
        "user_id INTEGER NOT NULL REFERENCES users(id), amount REAL NOT NULL)"
    )
    return d


@pytest.fixture
def database(db_file: Path, migrations: Path) -> Database:
    db = Database.from_stage("development")
    MigrationManager(db, migrations).apply()
    yield db
    db.close()


@pytest.mark.integration
class TestDatabaseWorkflow:
    def test_environment_selects_file(self, database: Database, db_file: Path) -> None:
        assert database.client == "sqlite3"
        assert database.descriptor.filename == str(db_file)
        assert db_file.exists()

    def test_pragmas_are_active(self, database: Database) -> None:
        assert database.fetch_scalar("PRAGMA journal_mode") == "wal"
        assert database.fetch_scalar("PRAGMA foreign_keys") == 1

    def test_crud(self, database: Database) -> None:
        database.execute(
            "INSERT INTO users (id, name, email) VALUES (:id, :name, :email)",
            {"id": 1, "name": "Alice", "email": "alice@test.com"},
        )
        row = database.fetch_one("SELECT name, email FROM users WHERE id = :id", {"id": 1})
        assert row == {"name": "Alice", "email": "alice@test.com"}

        assert database.execute("DELETE FROM users WHERE id = :id", {"id": 1}) == 1
        assert database.fetch_scalar("SELECT COUNT(*) FROM users") == 0

    def test_foreign_keys_enforced(self, database: Database) -> None:
        with pytest.raises(QueryExecutionError, match="FOREIGN KEY"):
            database.execute(
                "INSERT INTO orders (id, user_id, amount) VALUES (1, 99, 10.0)"
            )

    def test_transaction_rolls_back(self, database: Database) -> None:
        with pytest.raises(RuntimeError), database.transaction() as tx:
            tx.execute("INSERT INTO users (id, name, email) VALUES (1, 'A', 'a@test.com')")
            raise RuntimeError("boom")
        assert database.fetch_scalar("SELECT COUNT(*) FROM users") == 0

    def test_migrations_are_recorded(self, database: Database, migrations: Path) -> None:
        manager = MigrationManager(database, migrations)
        assert manager.current_version() == "002"
        assert manager.pending() == []

    def test_test_stage_uses_fixed_file(self, database: Database, tmp_path: Path) -> None:
        with database.connection("test") as other:
            assert other.descriptor.filename == "./data/test.sqlite3"
            assert other.fetch_scalar("SELECT 1") == 1
        assert (tmp_path / "data" / "test.sqlite3").exists()


@pytest.mark.integration
class TestNativeAlongsideDatabase:
    def test_native_writes_visible_to_database(self, database: Database) -> None:
        ctx = DatabaseContext()
        try:
            native = ctx.native
            assert isinstance(native, SqliteService)
            result = native.run(
                "INSERT INTO users (name, email) VALUES (?, ?)", ["Bob", "bob@test.com"]
            )
            assert result.changes == 1

            row = database.fetch_one(
                "SELECT name FROM users WHERE id = :id", {"id": result.last_insert_rowid}
            )
            assert row == {"name": "Bob"}
        finally:
            ctx.close()

    def test_native_transaction_with_orders(self, database: Database) -> None:
        ctx = DatabaseContext()
        try:

            def place_order(db: SqliteService) -> int:
                user = db.run(
                    "INSERT INTO users (name, email) VALUES (:name, :email)",
                    {"name": "Carol", "email": "carol@test.com"},
                )
                db.run(
                    "INSERT INTO orders (user_id, amount) VALUES (?, ?)",
                    [user.last_insert_rowid, 42.5],
                )
                return user.last_insert_rowid

            user_id = ctx.native.transaction(place_order)
            total = database.fetch_scalar(
                "SELECT SUM(amount) FROM orders WHERE user_id = :id", {"id": user_id}
            )
            assert total == 42.5
        finally:
            ctx.close()

    def test_shared_context_follows_environment(
        self, database: Database, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        assert get_context().native.is_available

        monkeypatch.setenv("DB_CLIENT", "pg")
        reset_context()
        assert get_context().native.is_available is False
