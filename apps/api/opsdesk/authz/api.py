from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from opsdesk.api.errors import error_response
from opsdesk.authz.schemas import RoleCreate, RoleRead
from opsdesk.authz.service import role_directory_service
from opsdesk.core.auth import ActorUser
from opsdesk.core.database import get_db
from opsdesk.core.rbac import require_permissions

router = APIRouter(prefix="/api/roles", tags=["ops.roles"])


@router.get("", response_model=list[RoleRead])
def list_roles(
    db: Session = Depends(get_db),
    _actor: ActorUser = Depends(require_permissions("ops.users.read")),
) -> list[RoleRead]:
    return role_directory_service.list_roles(db)


@router.post("", response_model=RoleRead, status_code=status.HTTP_201_CREATED)
def create_role(
    request: Request,
    dto: RoleCreate,
    db: Session = Depends(get_db),
    _actor: ActorUser = Depends(require_permissions("ops.roles.manage")),
) -> RoleRead | JSONResponse:
    try:
        return role_directory_service.create_role(db, dto)
    except HTTPException as exc:
        return error_response(
            request,
            status_code=exc.status_code,
            code="role_create_failed",
            message=str(exc.detail),
            details=exc.detail,
        )


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
def delete_role(
    request: Request,
    role_id: uuid.UUID,
    db: Session = Depends(get_db),
    _actor: ActorUser = Depends(require_permissions("ops.roles.manage")),
) -> Response:
    try:
        role_directory_service.delete_role(db, role_id)
    except HTTPException as exc:
        return error_response(
            request,
            status_code=exc.status_code,
            code="role_delete_failed",
            message=str(exc.detail),
            details=exc.detail,
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
