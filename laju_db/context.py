"""Process-level entry point.

A ``DatabaseContext`` pins one settings snapshot and the active stage, and
hands out the query-builder and native services derived from it. Code that
needs several stages at once (for example copying data between backends)
creates its own contexts or calls ``Database.connection``; nothing here is
reassigned behind the caller's back.

Usage:
    from laju_db import get_context

    ctx = get_context()
    users = ctx.default.fetch_all("SELECT * FROM users")
    if ctx.native.is_available:
        row = ctx.native.get("SELECT * FROM users WHERE id = ?", [1])
"""

from __future__ import annotations

import logging
from functools import cached_property, lru_cache

from laju_db.core.config import (
    BackendDescriptor,
    DatabaseSettings,
    active_stage,
    resolve_stage,
)
from laju_db.core.database import Database
from laju_db.native.sqlite import NativeService, create_native_service

logger = logging.getLogger(__name__)


class DatabaseContext:
    """Settings snapshot plus the services opened from it."""

    def __init__(
        self,
        settings: DatabaseSettings | None = None,
        stage: str | None = None,
    ) -> None:
        self.settings = settings if settings is not None else DatabaseSettings()
        self.stage = stage or active_stage(self.settings)

    def descriptor(self, stage: str | None = None) -> BackendDescriptor:
        return resolve_stage(stage or self.stage, self.settings)

    def is_sqlite(self) -> bool:
        return self.descriptor().is_sqlite

    def database(self, stage: str | None = None) -> Database:
        """Open a new database; the caller closes it."""
        return Database.from_stage(stage or self.stage, self.settings)

    @cached_property
    def default(self) -> Database:
        """Database for the active stage, opened on first use."""
        return self.database()

    @cached_property
    def native(self) -> NativeService:
        """Native SQLite service for the active stage, decided on first use."""
        return create_native_service(self.descriptor())

    def close(self) -> None:
        """Close whichever services were opened."""
        if "default" in self.__dict__:
            self.__dict__.pop("default").close()
        if "native" in self.__dict__:
            self.__dict__.pop("native").close()

    def __repr__(self) -> str:
        return f"<DatabaseContext stage={self.stage!r}>"


@lru_cache(maxsize=1)
def get_context() -> DatabaseContext:
    """Shared context built from the environment on first call."""
    context = DatabaseContext()
    logger.debug("Created database context for stage '%s'", context.stage)
    return context


def reset_context() -> None:
    """Close the shared context so the next ``get_context`` rereads the environment."""
    if get_context.cache_info().currsize:
        get_context().close()
    get_context.cache_clear()
