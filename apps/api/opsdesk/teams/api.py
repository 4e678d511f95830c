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
from opsdesk.teams.bulk import team_bulk_executor
from opsdesk.teams.listing import TEAM_LISTING
from opsdesk.teams.records import TeamRecords
from opsdesk.teams.schemas import TeamCreate, TeamRead, TeamUpdate
from opsdesk.teams.service import team_service

router = APIRouter(prefix="/api/teams", tags=["ops.teams"])


def _failed(request: Request, exc: HTTPException, code: str) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        details=exc.detail,
    )


@router.get("", response_model=PageRead[TeamRead])
def list_teams(
    request: Request,
    query: ListQuery = Depends(list_query_params),
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.teams.read")),
) -> PageRead[TeamRead] | JSONResponse:
    return page_response(request, team_service.list_teams(db), query, TEAM_LISTING)


@router.post("", response_model=TeamRead, status_code=status.HTTP_201_CREATED)
def create_team(
    request: Request,
    dto: TeamCreate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.teams.write")),
) -> TeamRead | JSONResponse:
    try:
        return TeamRecords(db, actor).create(dto)
    except HTTPException as exc:
        return _failed(request, exc, "team_create_failed")


@router.post("/bulk", response_model=BulkActionResponse)
def bulk_teams(
    request: Request,
    payload: BulkActionRequest,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.teams.write")),
) -> BulkActionResponse | JSONResponse:
    return run_bulk_request(
        request,
        executor=team_bulk_executor,
        records=TeamRecords(db, actor),
        payload=payload,
        actor=actor,
        destructive_permission="ops.teams.delete",
    )


@router.get("/{team_id}", response_model=TeamRead)
def get_team(
    request: Request,
    team_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.teams.read")),
) -> TeamRead | JSONResponse:
    try:
        return team_service.get_team(db, team_id)
    except HTTPException as exc:
        return _failed(request, exc, "team_get_failed")


@router.patch("/{team_id}", response_model=TeamRead)
def patch_team(
    request: Request,
    team_id: uuid.UUID,
    dto: TeamUpdate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.teams.write")),
) -> TeamRead | JSONResponse:
    try:
        return TeamRecords(db, actor).update(str(team_id), dto)
    except HTTPException as exc:
        return _failed(request, exc, "team_update_failed")


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
def delete_team(
    request: Request,
    team_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.teams.delete")),
) -> Response:
    try:
        TeamRecords(db, actor).delete(str(team_id))
    except HTTPException as exc:
        return _failed(request, exc, "team_delete_failed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
