from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import Session

from opsdesk.api.errors import error_response
from opsdesk.api.listing import PageRead, list_query_params, page_response
from opsdesk.bulk.endpoint import run_bulk_request
from opsdesk.bulk.schemas import BulkActionRequest, BulkActionResponse
from opsdesk.core.auth import ActorUser
from opsdesk.core.database import get_db
from opsdesk.core.rbac import require_permissions
from opsdesk.listing import ListQuery
from opsdesk.users.bulk import user_bulk_executor
from opsdesk.users.listing import USER_LISTING
from opsdesk.users.records import UserRecords
from opsdesk.users.schemas import AssignRoleRequest, UserCreate, UserRead, UserUpdate
from opsdesk.users.service import user_service

router = APIRouter(prefix="/api/users", tags=["ops.users"])


def _failed(request: Request, exc: HTTPException, code: str) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        details=exc.detail,
    )


@router.get("", response_model=PageRead[UserRead])
def list_users(
    request: Request,
    query: ListQuery = Depends(list_query_params),
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.read")),
) -> PageRead[UserRead] | JSONResponse:
    return page_response(request, user_service.list_users(db), query, USER_LISTING)


@router.post("", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def create_user(
    request: Request,
    dto: UserCreate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.write")),
) -> UserRead | JSONResponse:
    try:
        return UserRecords(db, actor).create(dto)
    except HTTPException as exc:
        return _failed(request, exc, "user_create_failed")


@router.post("/bulk", response_model=BulkActionResponse)
def bulk_users(
    request: Request,
    payload: BulkActionRequest,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.write")),
) -> BulkActionResponse | JSONResponse:
    return run_bulk_request(
        request,
        executor=user_bulk_executor,
        records=UserRecords(db, actor),
        payload=payload,
        actor=actor,
        destructive_permission="ops.users.delete",
        action_permissions={"role_change": "ops.users.manage_roles"},
    )


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    request: Request,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.read")),
) -> UserRead | JSONResponse:
    try:
        return user_service.get_user(db, user_id)
    except HTTPException as exc:
        return _failed(request, exc, "user_get_failed")


@router.patch("/{user_id}", response_model=UserRead)
def patch_user(
    request: Request,
    user_id: uuid.UUID,
    dto: UserUpdate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.write")),
) -> UserRead | JSONResponse:
    try:
        return UserRecords(db, actor).update(str(user_id), dto)
    except HTTPException as exc:
        return _failed(request, exc, "user_update_failed")


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
def delete_user(
    request: Request,
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.delete")),
) -> Response:
    try:
        UserRecords(db, actor).delete(str(user_id))
    except HTTPException as exc:
        return _failed(request, exc, "user_delete_failed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{user_id}/role", response_model=UserRead)
def assign_user_role(
    request: Request,
    user_id: uuid.UUID,
    dto: AssignRoleRequest,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.users.manage_roles")),
) -> UserRead | JSONResponse:
    try:
        return UserRecords(db, actor).assign_role(str(user_id), dto.role_id)
    except HTTPException as exc:
        return _failed(request, exc, "user_role_assign_failed")
