"""laju-db - multi-backend database layer for the Laju framework."""

from __future__ import annotations

from laju_db.context import DatabaseContext, get_context, reset_context
from laju_db.core.config import (
    BackendDescriptor,
    ConnectionParams,
    DatabaseSettings,
    PoolConfig,
    active_stage,
    get_client_name,
    is_sqlite,
    load_stages,
    resolve_backend,
    resolve_stage,
)
from laju_db.core.connection import AsyncConnectionManager, ConnectionManager
from laju_db.core.database import AsyncDatabase, Database
from laju_db.core.enums import DatabaseBackend
from laju_db.core.exceptions import (
    AdapterError,
    ConfigurationError,
    ExecutionError,
    LajuDBError,
    MigrationError,
    MigrationExecutionError,
    MigrationFileError,
    MultipleRowsError,
    ParameterBindingError,
    PoolError,
    QueryExecutionError,
    ServiceUnavailableError,
    TransactionError,
    TransactionStateError,
    UnknownStageError,
)
from laju_db.core.migration import MigrationInfo, MigrationManager
from laju_db.core.optimizations import (
    SQLITE_PRAGMAS,
    apply_database_optimizations,
    apply_database_optimizations_async,
)
from laju_db.core.transaction import AsyncTransactionManager, TransactionManager
from laju_db.native.sqlite import (
    NativeService,
    RunResult,
    SqliteService,
    UnavailableSqliteService,
    create_native_service,
)

__all__ = [
    # Context
    "DatabaseContext",
    "get_context",
    "reset_context",
    # Configuration
    "DatabaseSettings",
    "BackendDescriptor",
    "ConnectionParams",
    "PoolConfig",
    "active_stage",
    "get_client_name",
    "is_sqlite",
    "load_stages",
    "resolve_backend",
    "resolve_stage",
    # Connection
    "ConnectionManager",
    "AsyncConnectionManager",
    # Query-builder service
    "Database",
    "AsyncDatabase",
    "SQLITE_PRAGMAS",
    "apply_database_optimizations",
    "apply_database_optimizations_async",
    # Transaction
    "TransactionManager",
    "AsyncTransactionManager",
    # Migration
    "MigrationManager",
    "MigrationInfo",
    # Native SQLite
    "NativeService",
    "RunResult",
    "SqliteService",
    "UnavailableSqliteService",
    "create_native_service",
    # Enums
    "DatabaseBackend",
    # Exceptions
    "LajuDBError",
    "ConfigurationError",
    "UnknownStageError",
    "ExecutionError",
    "QueryExecutionError",
    "MultipleRowsError",
    "ParameterBindingError",
    "TransactionError",
    "TransactionStateError",
    "MigrationError",
    "MigrationFileError",
    "MigrationExecutionError",
    "AdapterError",
    "PoolError",
    "ServiceUnavailableError",
]
