from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

from opsdesk.api.errors import error_response
from opsdesk.bulk.errors import BulkActionError
from opsdesk.bulk.executor import BulkExecutor, pluralize, summarize
from opsdesk.bulk.guard import bulk_action_guard
from opsdesk.bulk.schemas import BulkActionRequest, BulkActionResponse
from opsdesk.core.auth import ActorUser
from opsdesk.core.config import get_settings
from opsdesk.metrics import observe_bulk_rejection

logger = logging.getLogger("opsdesk.bulk")


def _has_permission(actor: ActorUser, permission: str) -> bool:
    return actor.is_super_admin or permission in actor.permissions


def run_bulk_request(
    request: Request,
    *,
    executor: BulkExecutor,
    records: Any,
    payload: BulkActionRequest,
    actor: ActorUser,
    destructive_permission: str | None = None,
    action_permissions: Mapping[str, str] | None = None,
) -> BulkActionResponse | JSONResponse:
    entity_type = executor.entity_type
    try:
        action = executor.get_action(payload.action)
        required = [(action_permissions or {}).get(action.name)]
        if action.destructive:
            required.append(destructive_permission)
        missing = [permission for permission in required if permission and not _has_permission(actor, permission)]
        if missing:
            return error_response(
                request,
                status_code=403,
                code="FORBIDDEN",
                message=f"Missing permissions: {', '.join(missing)}",
            )
        if action.destructive and not payload.confirm:
            observe_bulk_rejection(entity_type, "confirmation_required")
            count = len(set(payload.ids))
            return error_response(
                request,
                status_code=422,
                code="CONFIRMATION_REQUIRED",
                message=f"{action.name} of {count} {pluralize(executor.noun, count)} requires confirm=true",
                details={"action": action.name, "count": count},
            )

        with bulk_action_guard.hold(actor.user_id, entity_type):
            result = executor.execute(
                payload.action,
                payload.ids,
                payload.params,
                records,
                actor_user_id=actor.user_id,
                max_ids=get_settings().bulk_max_ids,
            )
    except BulkActionError as exc:
        observe_bulk_rejection(entity_type, exc.code.lower())
        logger.warning(
            "bulk_action.rejected",
            extra={"entity_type": entity_type, "action": payload.action, "error": str(exc)},
        )
        return error_response(
            request,
            status_code=exc.status_code,
            code=exc.code,
            message=str(exc),
            details=exc.details,
        )

    summary = summarize(action, result, executor.noun)
    return BulkActionResponse(
        entity_type=entity_type,
        action=action.name,
        success_count=result.success_count,
        failure_count=result.failure_count,
        failed_ids=result.failed_ids,
        errors=result.errors,
        message=summary.message,
        failure_message=summary.failure_message,
    )
