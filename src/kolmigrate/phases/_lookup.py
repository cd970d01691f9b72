"""Target-side lookups shared by the phases and the catalog."""

from __future__ import annotations

from typing import Any

from kolmigrate.session import Collections, MigrationSession

# Only collaborations written by the pipeline carry provenance
MIGRATED = {"$exists": True}


def provenance_filter(session: MigrationSession, source_project_id: str) -> dict[str, Any]:
    return {
        "migratedFrom.sourceProjectId": source_project_id,
        "migratedFrom.sourceDatabase": session.config.source_database,
    }


async def find_migrated_project(
    session: MigrationSession, source_project_id: str
) -> dict[str, Any] | None:
    """Find the target project whose provenance names the source project."""
    return await session.target_collection(Collections.PROJECTS).find_one(
        provenance_filter(session, source_project_id)
    )


async def find_existing_project(
    session: MigrationSession, source_project_id: str, name: str
) -> dict[str, Any] | None:
    """
    Find a target project that already stands for a source project.

    Applies ``session.config.project_dedupe``: provenance, name, or
    provenance then name.
    """
    strategy = session.config.project_dedupe
    projects = session.target_collection(Collections.PROJECTS)
    if strategy.checks_provenance:
        existing = await projects.find_one(provenance_filter(session, source_project_id))
        if existing is not None:
            return existing
    if strategy.checks_name:
        return await projects.find_one({"name": name})
    return None


__all__ = [
    "MIGRATED",
    "provenance_filter",
    "find_migrated_project",
    "find_existing_project",
]
