"""
Migration session: the pair of logical databases a migration runs against.

Every component receives a MigrationSession explicitly; there is no
module-level client. Sessions are cheap value objects, the stores inside
them own the connections.

Example:
    >>> session = MigrationSession.in_memory()
    >>> await session.source_collection(Collections.PROJECTS).insert_one({"id": "p1"})
    >>>
    >>> async with open_sqlite_session("migration.db") as session:
    ...     service = MigrationService(session)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import aiosqlite

from kolmigrate.models import MigrationConfig
from kolmigrate.observability import Tracer
from kolmigrate.stores import (
    DocumentCollection,
    DocumentStore,
    InMemoryDocumentStore,
    SQLiteDocumentStore,
    initialize_schema,
)

logger = logging.getLogger(__name__)


class Collections:
    """Collection names shared by both databases."""

    PROJECTS = "projects"
    COLLABORATIONS = "collaborations"
    TALENTS = "talents"
    WORKS = "works"
    CUSTOMERS = "customers"


@dataclass(frozen=True)
class MigrationSession:
    """
    The source and target databases plus the configuration for one run.

    Attributes:
        source: Legacy database (read-only for the pipeline).
        target: Redesigned database.
        config: Shared migration configuration.
    """

    source: DocumentStore
    target: DocumentStore
    config: MigrationConfig = field(default_factory=MigrationConfig)

    def source_collection(self, name: str) -> DocumentCollection:
        return self.source.collection(name)

    def target_collection(self, name: str) -> DocumentCollection:
        return self.target.collection(name)

    @classmethod
    def in_memory(
        cls,
        config: MigrationConfig | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> MigrationSession:
        """
        Create a session over two fresh in-memory stores.

        Args:
            config: Migration configuration (defaults apply if omitted)
            tracer: Optional tracer shared by both stores
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        config = config or MigrationConfig()
        return cls(
            source=InMemoryDocumentStore(config.source_database, tracer, enable_tracing),
            target=InMemoryDocumentStore(config.target_database, tracer, enable_tracing),
            config=config,
        )


@asynccontextmanager
async def open_sqlite_session(
    database: str | Path,
    config: MigrationConfig | None = None,
    *,
    busy_timeout: int = 5000,
    tracer: Tracer | None = None,
    enable_tracing: bool = True,
) -> AsyncIterator[MigrationSession]:
    """
    Open a session with both databases stored in one SQLite file.

    The schema is created on first use. The connection is closed when the
    context exits.

    Args:
        database: Path to the SQLite file, or ':memory:'
        config: Migration configuration (defaults apply if omitted)
        busy_timeout: Timeout in milliseconds when the database is locked
        tracer: Optional tracer shared by both stores
        enable_tracing: Whether to enable OpenTelemetry tracing (default True)

    Yields:
        A MigrationSession backed by SQLiteDocumentStore instances
    """
    config = config or MigrationConfig()
    async with aiosqlite.connect(str(database)) as connection:
        await connection.execute(f"PRAGMA busy_timeout = {int(busy_timeout)}")
        await initialize_schema(connection)
        logger.debug("Opened SQLite migration session: %s", database)

        lock = asyncio.Lock()
        yield MigrationSession(
            source=SQLiteDocumentStore(
                connection,
                config.source_database,
                lock=lock,
                tracer=tracer,
                enable_tracing=enable_tracing,
            ),
            target=SQLiteDocumentStore(
                connection,
                config.target_database,
                lock=lock,
                tracer=tracer,
                enable_tracing=enable_tracing,
            ),
            config=config,
        )


__all__ = [
    "Collections",
    "MigrationSession",
    "open_sqlite_session",
]
