"""
Shared pytest fixtures for the kolmigrate tests.

This module provides:
- Configuration fixtures (migration_config)
- Session fixtures over in-memory stores (session, spring_launch,
  migrated_spring_launch)
- SQLite session fixtures (sqlite_session)
- Tracing fixtures (mock_tracer)
- Service fixtures (service)
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio

from kolmigrate.models import MigrationConfig
from kolmigrate.observability import MockTracer
from kolmigrate.service import MigrationService
from kolmigrate.session import MigrationSession, open_sqlite_session
from tests.fixtures import migrate_structure, seed_spring_launch

# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def migration_config() -> MigrationConfig:
    """Default configuration with a small insert batch size."""
    return MigrationConfig(insert_batch_size=2)


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Tracer that records span names and attributes."""
    return MockTracer()


# ============================================================================
# Session Fixtures
# ============================================================================


@pytest.fixture
def session(migration_config: MigrationConfig) -> MigrationSession:
    """Empty session over two in-memory stores, tracing disabled."""
    return MigrationSession.in_memory(migration_config, enable_tracing=False)


@pytest_asyncio.fixture
async def spring_launch(session: MigrationSession) -> MigrationSession:
    """Session seeded with the Spring Launch scenario."""
    await seed_spring_launch(session)
    return session


@pytest_asyncio.fixture
async def migrated_spring_launch(spring_launch: MigrationSession) -> tuple[str, dict[str, str]]:
    """Spring Launch with the project and collaborations migrated."""
    return await migrate_structure(spring_launch)


@pytest_asyncio.fixture
async def sqlite_session(
    migration_config: MigrationConfig,
) -> AsyncGenerator[MigrationSession, None]:
    """Session over an in-memory SQLite database."""
    async with open_sqlite_session(
        ":memory:", migration_config, enable_tracing=False
    ) as sqlite_session:
        yield sqlite_session


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def service(spring_launch: MigrationSession) -> MigrationService:
    """Service over the Spring Launch scenario."""
    return MigrationService(spring_launch, enable_tracing=False)
