"""Unit tests for the Database query-builder service."""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from laju_db.core.config import BackendDescriptor, PoolConfig
from laju_db.core.database import AsyncDatabase, Database
from laju_db.core.enums import DatabaseBackend
from laju_db.core.exceptions import MultipleRowsError, PoolError, QueryExecutionError


@pytest.fixture
def database(sqlite_descriptor: BackendDescriptor) -> Database:
    """Database on a temp SQLite file with two users."""
    db = Database(sqlite_descriptor)
    db.execute("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT, email TEXT)")
    db.execute("INSERT INTO users (name, email) VALUES ('Alice', 'alice@example.com')")
    db.execute("INSERT INTO users (name, email) VALUES ('Bob', 'bob@example.com')")
    yield db
    db.close()


class TestDatabase:
    def test_fetch_one_returns_dict(self, database: Database) -> None:
        result = database.fetch_one("SELECT id, name, email FROM users WHERE id = :id", {"id": 1})
        assert result == {"id": 1, "name": "Alice", "email": "alice@example.com"}

    def test_fetch_one_returns_none_on_zero_rows(self, database: Database) -> None:
        assert database.fetch_one("SELECT * FROM users WHERE id = :id", {"id": 999}) is None

    def test_fetch_one_raises_multiple_rows(self, database: Database) -> None:
        with pytest.raises(MultipleRowsError):
            database.fetch_one("SELECT * FROM users")

    def test_fetch_all_returns_list_of_dicts(self, database: Database) -> None:
        results = database.fetch_all("SELECT name FROM users ORDER BY name")
        assert results == [{"name": "Alice"}, {"name": "Bob"}]

    def test_positional_params(self, database: Database) -> None:
        result = database.fetch_one("SELECT name FROM users WHERE id = ?", [2])
        assert result == {"name": "Bob"}

    def test_fetch_scalar(self, database: Database) -> None:
        assert database.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_fetch_scalar_no_rows(self, database: Database) -> None:
        assert database.fetch_scalar("SELECT id FROM users WHERE id = 999") is None

    def test_execute_returns_row_count(self, database: Database) -> None:
        affected = database.execute(
            "INSERT INTO users (name, email) VALUES (:name, :email)",
            {"name": "Charlie", "email": "c@ex.com"},
        )
        assert affected == 1
        assert database.execute("DELETE FROM users") == 3

    def test_raw_returns_rows(self, database: Database) -> None:
        assert database.raw("PRAGMA foreign_keys") == [{"foreign_keys": 1}]

    def test_driver_errors_are_wrapped(self, database: Database) -> None:
        with pytest.raises(QueryExecutionError, match="no such table") as exc_info:
            database.fetch_all("SELECT * FROM missing")
        assert exc_info.value.__cause__ is not None

    def test_usable_after_error(self, database: Database) -> None:
        with pytest.raises(QueryExecutionError):
            database.execute("INSERT INTO users (nope) VALUES (1)")
        assert database.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    def test_properties(self, database: Database) -> None:
        assert database.is_sqlite()
        assert database.client == "sqlite3"
        assert database.descriptor.backend is DatabaseBackend.SQLITE
        assert "sqlite3" in repr(database)


class TestFromStage:
    def test_from_stage_uses_settings(self, make_settings, tmp_path: Path) -> None:
        settings = make_settings(filename=str(tmp_path / "dev.db"))
        with Database.from_stage("development", settings) as db:
            assert db.descriptor.filename == str(tmp_path / "dev.db")
            assert db.fetch_scalar("SELECT 1") == 1
        assert (tmp_path / "dev.db").exists()

    def test_default_file_is_created_under_data(self, make_settings, tmp_path: Path) -> None:
        with Database.from_stage("development", make_settings()) as db:
            db.fetch_scalar("SELECT 1")
        assert (tmp_path / "data" / "dev.sqlite3").exists()

    def test_connection_returns_independent_instance(self, make_settings) -> None:
        with Database.from_stage("development", make_settings()) as dev:
            test_db = dev.connection("test")
            try:
                assert test_db is not dev
                assert test_db.descriptor.stage == "test"
                assert test_db.descriptor.filename == "./data/test.sqlite3"
                assert test_db.connection_manager is not dev.connection_manager
            finally:
                test_db.close()

    def test_connection_twice_gives_two_instances(self, make_settings) -> None:
        with Database.from_stage("development", make_settings()) as dev:
            first = dev.connection("development")
            second = dev.connection("development")
            try:
                assert first is not second
            finally:
                first.close()
                second.close()

    def test_close_releases_pool(self, sqlite_descriptor: BackendDescriptor) -> None:
        db = Database(sqlite_descriptor)
        db.fetch_scalar("SELECT 1")
        assert db.connection_manager.pool is not None
        db.close()
        assert db.connection_manager.pool is None

    def test_close_during_transaction_closes_on_release(
        self, sqlite_descriptor: BackendDescriptor
    ) -> None:
        db = Database(sqlite_descriptor)
        with db.transaction() as tx:
            tx.execute("CREATE TABLE t (id INTEGER)")
            pool = db.connection_manager.pool
            db.close()
            assert pool.size == 1
        assert pool.size == 0


class TestConcurrency:
    def test_queries_from_worker_threads(self, database: Database) -> None:
        def insert(n: int) -> int:
            return database.execute("INSERT INTO users (name) VALUES (:name)", {"name": f"u{n}"})

        with ThreadPoolExecutor(max_workers=8) as executor:
            assert list(executor.map(insert, range(20))) == [1] * 20
        assert database.fetch_scalar("SELECT COUNT(*) FROM users") == 22

    def test_caller_waits_for_open_transaction(self, database: Database) -> None:
        with ThreadPoolExecutor(max_workers=1) as executor:
            with database.transaction() as tx:
                tx.execute("INSERT INTO users (name) VALUES ('Carol')")
                future = executor.submit(database.fetch_scalar, "SELECT COUNT(*) FROM users")
                time.sleep(0.05)
                assert not future.done()
            assert future.result(timeout=5) == 3

    def test_acquire_timeout(self, sqlite_descriptor: BackendDescriptor) -> None:
        descriptor = sqlite_descriptor.model_copy(
            update={"pool": PoolConfig(min=1, max=1, acquire_timeout_ms=50)}
        )
        with Database(descriptor) as db, db.transaction():
            with ThreadPoolExecutor(max_workers=1) as executor:
                future = executor.submit(db.fetch_scalar, "SELECT 1")
                with pytest.raises(PoolError, match="Timed out"):
                    future.result(timeout=5)

    def test_reads_leave_no_open_transaction(self, database: Database) -> None:
        database.fetch_all("SELECT * FROM users")
        with database.connection_manager.get_connection() as conn:
            assert not conn.in_transaction


@pytest.fixture
async def async_database(sqlite_descriptor: BackendDescriptor) -> AsyncDatabase:
    db = AsyncDatabase(sqlite_descriptor)
    await db.execute("CREATE TABLE users (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT)")
    await db.execute("INSERT INTO users (name) VALUES ('Alice')")
    await db.execute("INSERT INTO users (name) VALUES ('Bob')")
    yield db
    await db.close()


class TestAsyncDatabase:
    async def test_fetch_one(self, async_database: AsyncDatabase) -> None:
        row = await async_database.fetch_one("SELECT name FROM users WHERE id = :id", {"id": 2})
        assert row == {"name": "Bob"}

    async def test_fetch_one_multiple_rows(self, async_database: AsyncDatabase) -> None:
        with pytest.raises(MultipleRowsError):
            await async_database.fetch_one("SELECT name FROM users")

    async def test_fetch_all_and_scalar(self, async_database: AsyncDatabase) -> None:
        rows = await async_database.fetch_all("SELECT name FROM users ORDER BY id")
        assert [r["name"] for r in rows] == ["Alice", "Bob"]
        assert await async_database.fetch_scalar("SELECT COUNT(*) FROM users") == 2

    async def test_execute_returns_rowcount(self, async_database: AsyncDatabase) -> None:
        assert await async_database.execute("UPDATE users SET name = upper(name)") == 2

    async def test_error_is_wrapped(self, async_database: AsyncDatabase) -> None:
        with pytest.raises(QueryExecutionError, match="no such table"):
            await async_database.fetch_all("SELECT * FROM missing")

    async def test_from_stage_applies_pragmas(self, make_settings, sqlite_file: Path) -> None:
        settings = make_settings(filename=str(sqlite_file))
        async with await AsyncDatabase.from_stage("development", settings) as db:
            assert db.client == "sqlite3"
            assert await db.fetch_scalar("PRAGMA journal_mode") == "wal"
            assert await db.fetch_scalar("PRAGMA foreign_keys") == 1
