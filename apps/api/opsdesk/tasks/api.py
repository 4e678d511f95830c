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
from opsdesk.tasks.bulk import task_bulk_executor
from opsdesk.tasks.importer import CsvFormatError, task_import_service
from opsdesk.tasks.listing import TASK_LISTING
from opsdesk.tasks.records import TaskRecords
from opsdesk.tasks.schemas import BulkTaskOperationRead, TaskCreate, TaskImportRequest, TaskRead, TaskUpdate
from opsdesk.tasks.service import task_service

router = APIRouter(prefix="/api/tasks", tags=["ops.tasks"])


def _failed(request: Request, exc: HTTPException, code: str) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        details=exc.detail,
    )


@router.get("", response_model=PageRead[TaskRead])
def list_tasks(
    request: Request,
    query: ListQuery = Depends(list_query_params),
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.read")),
) -> PageRead[TaskRead] | JSONResponse:
    return page_response(request, task_service.list_tasks(db), query, TASK_LISTING)


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
def create_task(
    request: Request,
    dto: TaskCreate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.write")),
) -> TaskRead | JSONResponse:
    try:
        return TaskRecords(db, actor).create(dto)
    except HTTPException as exc:
        return _failed(request, exc, "task_create_failed")


@router.post("/bulk", response_model=BulkActionResponse)
def bulk_tasks(
    request: Request,
    payload: BulkActionRequest,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.write")),
) -> BulkActionResponse | JSONResponse:
    return run_bulk_request(
        request,
        executor=task_bulk_executor,
        records=TaskRecords(db, actor),
        payload=payload,
        actor=actor,
        destructive_permission="ops.tasks.delete",
    )


@router.post("/import", response_model=BulkTaskOperationRead, status_code=status.HTTP_201_CREATED)
def import_tasks(
    request: Request,
    payload: TaskImportRequest,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.write")),
) -> BulkTaskOperationRead | JSONResponse:
    try:
        return task_import_service.import_csv(db, actor, payload.operation_name, payload.csv_text)
    except CsvFormatError as exc:
        return error_response(request, status_code=422, code="INVALID_CSV", message=str(exc))


@router.get("/imports/{operation_id}", response_model=BulkTaskOperationRead)
def get_import_operation(
    request: Request,
    operation_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.read")),
) -> BulkTaskOperationRead | JSONResponse:
    try:
        return task_import_service.get_operation(db, operation_id)
    except HTTPException as exc:
        return _failed(request, exc, "task_import_get_failed")


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    request: Request,
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.read")),
) -> TaskRead | JSONResponse:
    try:
        return task_service.get_task(db, task_id)
    except HTTPException as exc:
        return _failed(request, exc, "task_get_failed")


@router.patch("/{task_id}", response_model=TaskRead)
def patch_task(
    request: Request,
    task_id: uuid.UUID,
    dto: TaskUpdate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.write")),
) -> TaskRead | JSONResponse:
    try:
        return TaskRecords(db, actor).update(str(task_id), dto)
    except HTTPException as exc:
        return _failed(request, exc, "task_update_failed")


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
def delete_task(
    request: Request,
    task_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.tasks.delete")),
) -> Response:
    try:
        TaskRecords(db, actor).delete(str(task_id))
    except HTTPException as exc:
        return _failed(request, exc, "task_delete_failed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
