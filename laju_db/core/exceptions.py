"""laju-db exception hierarchy.

The query-builder path wraps driver errors in these types. The native SQLite
service is the exception: it re-raises ``sqlite3`` errors unchanged.
"""

from __future__ import annotations


class LajuDBError(Exception):
    """Base exception for all laju-db errors."""


# --- Configuration ---


class ConfigurationError(LajuDBError):
    """Base for configuration errors."""


class UnknownStageError(ConfigurationError):
    """Raised when a stage name has no configuration profile."""

    def __init__(self, stage: str, known: list[str]) -> None:
        self.stage = stage
        self.known = known
        super().__init__(f"Unknown database stage '{stage}' (known: {', '.join(known)})")


# --- Execution ---


class ExecutionError(LajuDBError):
    """Base for query execution errors."""


class QueryExecutionError(ExecutionError):
    """Raised when the driver rejects a statement."""

    def __init__(self, sql: str, detail: str) -> None:
        self.sql = sql
        super().__init__(f"Query failed: {detail} [{sql}]")


class MultipleRowsError(ExecutionError):
    """Raised when fetch_one encounters more than one row."""

    def __init__(self, sql: str, row_count: int) -> None:
        self.sql = sql
        self.row_count = row_count
        super().__init__(f"fetch_one returned {row_count} rows (expected 0 or 1) [{sql}]")


class ParameterBindingError(ExecutionError):
    """Raised on parameter binding failures."""

    def __init__(self, sql: str, detail: str) -> None:
        self.sql = sql
        super().__init__(f"Parameter binding error: {detail} [{sql}]")


# --- Transaction ---


class TransactionError(LajuDBError):
    """Base for transaction errors."""


class TransactionStateError(TransactionError):
    """Raised on invalid transaction state transitions."""

    def __init__(self, current_state: str, attempted_action: str) -> None:
        self.current_state = current_state
        self.attempted_action = attempted_action
        super().__init__(f"Cannot {attempted_action} transaction in state '{current_state}'")


# --- Migration ---


class MigrationError(LajuDBError):
    """Base for migration errors."""


class MigrationFileError(MigrationError):
    """Raised for invalid migration file naming."""

    def __init__(self, file_name: str, detail: str) -> None:
        self.file_name = file_name
        super().__init__(f"Invalid migration file '{file_name}': {detail}")


class MigrationExecutionError(MigrationError):
    """Raised when a migration fails to execute."""

    def __init__(self, version: str, detail: str) -> None:
        self.version = version
        super().__init__(f"Migration {version} failed: {detail}")


# --- Adapter ---


class AdapterError(LajuDBError):
    """Base for adapter errors."""


class PoolError(AdapterError):
    """Raised on connection pool failures."""


# --- Native service ---


class ServiceUnavailableError(LajuDBError):
    """Raised by every operation of the native SQLite stub."""

    def __init__(self, client: str) -> None:
        self.client = client
        super().__init__(
            f"SQLite service is not available with {client} client. "
            "Use Database service instead."
        )
