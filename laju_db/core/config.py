"""Connection configuration resolved from environment variables.

``DatabaseSettings`` reads the ``DB_*`` variables (and ``DATABASE_URL``),
optionally from a ``.env`` file. ``resolve_stage`` turns a settings object
into an immutable ``BackendDescriptor`` for one stage. Nothing here opens a
connection or touches the filesystem besides reading ``.env``.

Functions that take ``settings=None`` build a fresh ``DatabaseSettings`` on
every call, so environment changes are observed by the next call. Pass a
settings object to pin one snapshot.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from laju_db.core.enums import CLIENT_NAMES, CLIENT_TOKENS, DatabaseBackend
from laju_db.core.exceptions import ConfigurationError, UnknownStageError

DEFAULT_STAGE = "development"
STAGES = ("development", "production", "test")

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORTS = {DatabaseBackend.POSTGRESQL: 5432, DatabaseBackend.MYSQL: 3306}
DEFAULT_USERS = {DatabaseBackend.POSTGRESQL: "postgres", DatabaseBackend.MYSQL: "root"}
DEFAULT_DATABASE = "laju"
DEFAULT_FILENAME = "./data/dev.sqlite3"
TEST_FILENAME = "./data/test.sqlite3"
DEFAULT_MIGRATIONS_DIRECTORY = "./migrations"

DEFAULT_POOL_MIN = 0
DEFAULT_POOL_MAX = 10
POOL_TIMEOUT_MS = 30_000


class DatabaseSettings(BaseSettings):
    """Raw database settings as found in the environment."""

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    client: str | None = None
    database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    name: str | None = None
    filename: str | None = None
    pool_min: int | None = None
    pool_max: int | None = None
    connection: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("port", "pool_min", "pool_max", mode="before")
    @classmethod
    def _lenient_int(cls, value: Any) -> int | None:
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class PoolConfig(BaseModel):
    """Connection pool bounds. Timeouts of ``None`` mean fail immediately."""

    model_config = ConfigDict(frozen=True)

    min: int = Field(ge=0)
    max: int = Field(ge=1)
    acquire_timeout_ms: int | None = None
    idle_timeout_ms: int | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> PoolConfig:
        if self.min > self.max:
            raise ValueError(f"pool min ({self.min}) exceeds max ({self.max})")
        return self


class ConnectionParams(BaseModel):
    """Structured connection parameters for server backends."""

    model_config = ConfigDict(frozen=True)

    host: str
    port: int
    user: str
    password: str
    database: str


class BackendDescriptor(BaseModel):
    """Resolved connection and pool configuration for one stage.

    Exactly one of ``params``, ``url`` and ``filename`` is set: ``filename``
    for SQLite, ``url`` or ``params`` for PostgreSQL, ``params`` for MySQL.
    """

    model_config = ConfigDict(frozen=True)

    stage: str
    backend: DatabaseBackend
    client: str
    params: ConnectionParams | None = None
    url: str | None = None
    filename: str | None = None
    pool: PoolConfig
    use_null_as_default: bool = False
    migrations_directory: str = DEFAULT_MIGRATIONS_DIRECTORY

    @model_validator(mode="after")
    def _check_connection(self) -> BackendDescriptor:
        populated = [
            field
            for field in ("params", "url", "filename")
            if getattr(self, field) is not None
        ]
        if len(populated) != 1:
            raise ValueError(
                f"exactly one of params, url, filename must be set (got {populated or 'none'})"
            )
        allowed = {
            DatabaseBackend.SQLITE: {"filename"},
            DatabaseBackend.POSTGRESQL: {"params", "url"},
            DatabaseBackend.MYSQL: {"params"},
        }[self.backend]
        if populated[0] not in allowed:
            raise ValueError(f"{self.backend.value} backend cannot use '{populated[0]}'")
        return self

    @property
    def is_sqlite(self) -> bool:
        return self.backend is DatabaseBackend.SQLITE

    def require(self, field: str) -> Any:
        """Return ``params``, ``url`` or ``filename``, raising when it is unset."""
        value = getattr(self, field)
        if value is None:
            raise ConfigurationError(
                f"Invalid database configuration for connection '{self.stage}': "
                f"{self.backend.value} needs '{field}'"
            )
        return value


def _settings(settings: DatabaseSettings | None) -> DatabaseSettings:
    return settings if settings is not None else DatabaseSettings()


def resolve_backend(token: str | None) -> DatabaseBackend:
    """Map a ``DB_CLIENT`` token to a backend. Unknown or missing means SQLite."""
    if token is None:
        return DatabaseBackend.SQLITE
    return CLIENT_TOKENS.get(token.strip().lower(), DatabaseBackend.SQLITE)


def get_client_name(settings: DatabaseSettings | None = None) -> str:
    """Canonical client name for the configured backend."""
    return CLIENT_NAMES[resolve_backend(_settings(settings).client)]


def is_sqlite(settings: DatabaseSettings | None = None) -> bool:
    """Check if the configured backend is SQLite."""
    return resolve_backend(_settings(settings).client) is DatabaseBackend.SQLITE


def active_stage(settings: DatabaseSettings | None = None) -> str:
    """Stage selected by ``DB_CONNECTION``, ``development`` when unset."""
    return _settings(settings).connection or DEFAULT_STAGE


def build_connection(settings: DatabaseSettings) -> dict[str, Any]:
    """Build the connection part of a descriptor.

    Returns a mapping with exactly one of ``params``, ``url`` or ``filename``.
    For PostgreSQL, ``DATABASE_URL`` wins over the individual fields.
    """
    backend = resolve_backend(settings.client)

    if backend is DatabaseBackend.POSTGRESQL and settings.database_url:
        return {"url": settings.database_url}

    if backend is DatabaseBackend.SQLITE:
        return {"filename": settings.filename or DEFAULT_FILENAME}

    return {
        "params": ConnectionParams(
            host=settings.host or DEFAULT_HOST,
            port=settings.port if settings.port is not None else DEFAULT_PORTS[backend],
            user=settings.user or DEFAULT_USERS[backend],
            password=settings.password or "",
            database=settings.name or DEFAULT_DATABASE,
        )
    }


def _sqlite_pool() -> PoolConfig:
    return PoolConfig(min=1, max=1, acquire_timeout_ms=POOL_TIMEOUT_MS)


def build_pool(settings: DatabaseSettings) -> PoolConfig:
    """Build pool bounds.

    SQLite is pinned to a single connection since the engine serializes
    writers; other callers wait up to the acquire timeout for it. Server
    backends honor ``DB_POOL_MIN``/``DB_POOL_MAX``.
    """
    if resolve_backend(settings.client) is DatabaseBackend.SQLITE:
        return _sqlite_pool()

    pool_min = settings.pool_min if settings.pool_min is not None else DEFAULT_POOL_MIN
    pool_max = settings.pool_max if settings.pool_max is not None else DEFAULT_POOL_MAX
    # Out-of-range values are clamped rather than rejected.
    pool_max = max(pool_max, 1)
    pool_min = min(max(pool_min, 0), pool_max)
    return PoolConfig(
        min=pool_min,
        max=pool_max,
        acquire_timeout_ms=POOL_TIMEOUT_MS,
        idle_timeout_ms=POOL_TIMEOUT_MS,
    )


def _test_descriptor() -> BackendDescriptor:
    # Independent of DB_* so tests never reach the configured server.
    return BackendDescriptor(
        stage="test",
        backend=DatabaseBackend.SQLITE,
        client=CLIENT_NAMES[DatabaseBackend.SQLITE],
        filename=TEST_FILENAME,
        pool=_sqlite_pool(),
        use_null_as_default=True,
    )


def resolve_stage(stage: str, settings: DatabaseSettings | None = None) -> BackendDescriptor:
    """Resolve the descriptor for a named stage.

    Raises:
        UnknownStageError: If ``stage`` is not one of ``STAGES``.
    """
    if stage not in STAGES:
        raise UnknownStageError(stage, list(STAGES))
    if stage == "test":
        return _test_descriptor()

    settings = _settings(settings)
    backend = resolve_backend(settings.client)
    return BackendDescriptor(
        stage=stage,
        backend=backend,
        client=CLIENT_NAMES[backend],
        pool=build_pool(settings),
        use_null_as_default=backend is DatabaseBackend.SQLITE,
        **build_connection(settings),
    )


def load_stages(settings: DatabaseSettings | None = None) -> dict[str, BackendDescriptor]:
    """Resolve every stage from one settings snapshot."""
    settings = _settings(settings)
    return {stage: resolve_stage(stage, settings) for stage in STAGES}
