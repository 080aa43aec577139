"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from laju_db.context import reset_context
from laju_db.core.config import BackendDescriptor, DatabaseSettings, PoolConfig
from laju_db.core.enums import DatabaseBackend

DB_ENV_VARS = (
    "DB_CLIENT",
    "DATABASE_URL",
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_FILENAME",
    "DB_POOL_MIN",
    "DB_POOL_MAX",
    "DB_CONNECTION",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    """Start every test with no DB_* variables and no .env in the working dir."""
    for name in DB_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    reset_context()


@pytest.fixture
def make_settings():
    """Build a settings snapshot that ignores any .env file.

    Usage:
        settings = make_settings(client="pg", host="db.internal")
    """

    def _make(**values: object) -> DatabaseSettings:
        return DatabaseSettings(_env_file=None, **values)

    return _make


@pytest.fixture
def sqlite_file(tmp_path: Path) -> Path:
    """Path of a not-yet-created SQLite file inside a nested directory."""
    return tmp_path / "data" / "app.sqlite3"


@pytest.fixture
def sqlite_descriptor(sqlite_file: Path) -> BackendDescriptor:
    return BackendDescriptor(
        stage="development",
        backend=DatabaseBackend.SQLITE,
        client="sqlite3",
        filename=str(sqlite_file),
        pool=PoolConfig(min=1, max=1, acquire_timeout_ms=5_000),
        use_null_as_default=True,
    )
