"""
Shared test fixtures for the kolmigrate tests.

This module provides:
- Document factories for source and target records
- Seeding helpers, including the Spring Launch scenario

Usage:
    from tests.fixtures import (
        source_project,
        source_collaboration,
        seed_source,
        seed_spring_launch,
    )
"""

from tests.fixtures.documents import (
    customer,
    daily_stat,
    pricing_config,
    source_collaboration,
    source_project,
    source_talent,
    source_work,
    target_talent,
)
from tests.fixtures.scenario import (
    SPRING_LAUNCH_DATES,
    migrate_structure,
    seed_source,
    seed_spring_launch,
    seed_target,
)

__all__ = [
    # Documents
    "customer",
    "daily_stat",
    "pricing_config",
    "source_collaboration",
    "source_project",
    "source_talent",
    "source_work",
    "target_talent",
    # Seeding
    "SPRING_LAUNCH_DATES",
    "seed_source",
    "seed_target",
    "seed_spring_launch",
    "migrate_structure",
]
