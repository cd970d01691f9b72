"""
Request dispatch for the migration service.

``handle_request`` maps an operation payload onto MigrationService:

    {"operation": "migrateCollaborations",
     "sourceProjectId": "p1",
     "targetProjectId": "proj_1735689600000_k3x9a1q"}

Operation and parameter names are camelCase. ``newProjectId`` is accepted
wherever ``targetProjectId`` is, for clients of the earlier API.

``handle_http_event`` wraps it for an HTTP function runtime: CORS preflight,
JSON body plus query string parameters, and status codes.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from kolmigrate.serialization import json_dumps, json_loads
from kolmigrate.service import INTERNAL_ERROR_MESSAGE, Envelope, MigrationService

logger = logging.getLogger(__name__)

UNKNOWN_OPERATION = "UNKNOWN_OPERATION"
INVALID_BODY = "INVALID_REQUEST_BODY"

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Content-Type": "application/json",
}

Operation = Callable[[MigrationService, Mapping[str, Any]], Awaitable[Envelope]]


def _target_project_id(params: Mapping[str, Any]) -> Any:
    return params.get("targetProjectId") or params.get("newProjectId")


OPERATIONS: dict[str, Operation] = {
    "listSourceProjects": lambda service, params: service.list_source_projects(),
    "validateTalents": lambda service, params: service.validate_talents(
        params.get("projectId") or params.get("sourceProjectId")
    ),
    "migrateProject": lambda service, params: service.migrate_project(
        params.get("sourceProjectId"), params.get("customerId")
    ),
    "migrateCollaborations": lambda service, params: service.migrate_collaborations(
        params.get("sourceProjectId"),
        _target_project_id(params),
        params.get("talentMappings"),
    ),
    "migrateEffects": lambda service, params: service.migrate_effects(
        params.get("sourceProjectId"), params.get("collaborationMappings")
    ),
    "migrateDailyStats": lambda service, params: service.migrate_daily_stats(
        params.get("sourceProjectId"),
        params.get("collaborationMappings"),
        params.get("trackingStatus"),
    ),
    "validateMigration": lambda service, params: service.validate_migration(
        params.get("sourceProjectId"), _target_project_id(params)
    ),
    "rollbackMigration": lambda service, params: service.rollback_migration(
        _target_project_id(params)
    ),
}
"""Operation name to service call."""


def unknown_operation(operation: Any) -> Envelope:
    """Failure envelope for an operation name that is not in OPERATIONS."""
    return {
        "success": False,
        "message": f"Unknown operation: {operation}",
        "errorCode": UNKNOWN_OPERATION,
        "availableOperations": list(OPERATIONS),
    }


async def handle_request(service: MigrationService, payload: Mapping[str, Any]) -> Envelope:
    """
    Dispatch one operation payload.

    Args:
        service: Service to call
        payload: ``{"operation": name, **params}``

    Returns:
        The operation's envelope, or a failure envelope listing the
        available operations when the name is unknown
    """
    operation = payload.get("operation")
    handler = OPERATIONS.get(operation) if isinstance(operation, str) else None
    if handler is None:
        logger.warning("Rejected unknown operation %r", operation)
        return unknown_operation(operation)

    logger.info("Running operation %s", operation)
    return await handler(service, payload)


def _response(status_code: int, body: Any) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": dict(CORS_HEADERS),
        "body": json_dumps(body) if body is not None else "",
    }


async def handle_http_event(
    service: MigrationService, event: Mapping[str, Any]
) -> dict[str, Any]:
    """
    Handle an HTTP function event.

    Status codes: 204 for OPTIONS, 400 for an unreadable body or unknown
    operation, 500 for an unexpected failure, otherwise 200 with the
    envelope (operation failures are reported in the envelope).

    Args:
        service: Service to call
        event: ``{"httpMethod", "body", "queryStringParameters"}``

    Returns:
        ``{"statusCode", "headers", "body"}`` with a JSON body
    """
    if event.get("httpMethod") == "OPTIONS":
        return _response(204, None)

    params: dict[str, Any] = {}
    body = event.get("body")
    if body:
        try:
            parsed = json_loads(body)
        except json.JSONDecodeError:
            logger.warning("Rejected request with invalid JSON body")
            return _response(
                400,
                {
                    "success": False,
                    "message": "Invalid JSON request body",
                    "errorCode": INVALID_BODY,
                },
            )
        if not isinstance(parsed, dict):
            return _response(
                400,
                {
                    "success": False,
                    "message": "Request body must be a JSON object",
                    "errorCode": INVALID_BODY,
                },
            )
        params.update(parsed)
    params.update(event.get("queryStringParameters") or {})

    operation = params.get("operation")
    if not isinstance(operation, str) or operation not in OPERATIONS:
        return _response(400, unknown_operation(operation))

    try:
        return _response(200, await handle_request(service, params))
    except Exception as e:
        logger.exception("Request for operation %s failed", operation)
        return _response(
            500, {"success": False, "message": INTERNAL_ERROR_MESSAGE, "error": str(e)}
        )


__all__ = [
    "CORS_HEADERS",
    "OPERATIONS",
    "handle_request",
    "handle_http_event",
    "unknown_operation",
]
