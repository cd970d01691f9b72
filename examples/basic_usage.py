"""
Basic Usage Example

This example walks one source project through the whole migration:
- Seeding a legacy database and the redesigned target database
- Checking that every talent has a target identity
- Running the project, collaboration, effect and daily stats phases
- Reconciling the result and rolling it back

Run with: python examples/basic_usage.py
"""

import asyncio
import json
import logging

from kolmigrate import (
    Collections,
    MigrationConfig,
    MigrationService,
    MigrationSession,
    handle_request,
)

# =============================================================================
# Step 1: Seed the databases
# =============================================================================
# The source database holds the legacy records exactly as they were written:
# Chinese status labels, budgets in 万 and months like "M3".


async def seed(session: MigrationSession) -> None:
    await session.source_collection(Collections.PROJECTS).insert_one(
        {
            "id": "p1",
            "name": "Spring Launch",
            "status": "执行中",
            "financialYear": 2025,
            "financialMonth": "M3",
            "budget": "8万",
            "discount": "0.85",
        }
    )
    await session.source_collection(Collections.TALENTS).insert_one(
        {"id": "t1", "nickname": "Lily", "xingtuId": "x1"}
    )
    await session.source_collection(Collections.COLLABORATIONS).insert_one(
        {
            "id": "c1",
            "projectId": "p1",
            "talentId": "t1",
            "amount": 1000,
            "rebate": 0.1,
            "status": "视频已发布",
            "videoId": "v1",
        }
    )
    await session.source_collection(Collections.WORKS).insert_one(
        {
            "id": "w1",
            "projectId": "p1",
            "collaborationId": "c1",
            "videoId": "v1",
            "t7": {"views": 12000},
            "t21": {"views": 30000},
            "dailyStats": [
                {"date": "2025-03-01", "totalViews": 4000, "cpm": 25.0},
                {"date": "2025-03-02", "totalViews": 8000, "cpm": 22.5},
            ],
        }
    )

    # The target database already knows the talent and the customer
    await session.target_collection(Collections.TALENTS).insert_one(
        {"oneId": "one_1", "name": "Lily Chen", "platform": "douyin", "platformAccountId": "x1"}
    )
    await session.target_collection(Collections.CUSTOMERS).insert_one(
        {
            "code": "CUS20250001",
            "businessStrategies": {
                "talentProcurement": {
                    "platformPricingConfigs": {
                        "douyin": {
                            "pricingModel": "framework",
                            "configs": [
                                {
                                    "validFrom": "2025-01-01",
                                    "validTo": "2025-06-30",
                                    "discountRate": 0.8,
                                    "platformFeeRate": 0.05,
                                    "includesPlatformFee": False,
                                }
                            ],
                        }
                    }
                }
            },
        }
    )


# =============================================================================
# Step 2: Run the migration
# =============================================================================
# Every operation returns a dictionary envelope with a "success" flag, so the
# same calls work behind an HTTP endpoint. Each phase is safe to re-run.


def show(title: str, envelope: dict) -> None:
    print(f"\n--- {title} ---")
    print(json.dumps(envelope, ensure_ascii=False, indent=2, default=str))


async def main() -> None:
    logging.basicConfig(level=logging.INFO)

    session = MigrationSession.in_memory(MigrationConfig(), enable_tracing=False)
    await seed(session)
    service = MigrationService(session, enable_tracing=False)

    show("Source projects", await service.list_source_projects())
    show("Talent validation", await service.validate_talents("p1"))

    project = await service.migrate_project("p1")
    show("Project", project)
    target_project_id = project["targetProjectId"]

    collaborations = await service.migrate_collaborations("p1", target_project_id)
    show("Collaborations", collaborations)
    mappings = collaborations["mappings"]

    show("Effects", await service.migrate_effects("p1", mappings))
    show("Daily stats", await service.migrate_daily_stats("p1", mappings, "archived"))
    show("Validation", await service.validate_migration("p1", target_project_id))

    # Running a phase again finds the existing project instead of duplicating it
    show("Project (again)", await service.migrate_project("p1"))

    # =========================================================================
    # Step 3: Dispatch by operation name and roll back
    # =========================================================================
    show(
        "Rollback",
        await handle_request(
            service, {"operation": "rollbackMigration", "newProjectId": target_project_id}
        ),
    )
    show("Source projects after rollback", await service.list_source_projects())


if __name__ == "__main__":
    asyncio.run(main())
