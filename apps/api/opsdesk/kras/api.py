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
from opsdesk.kras.bulk import kra_template_bulk_executor
from opsdesk.kras.listing import KRA_TEMPLATE_LISTING
from opsdesk.kras.records import KraTemplateRecords
from opsdesk.kras.schemas import KraTemplateCreate, KraTemplateRead, KraTemplateUpdate
from opsdesk.kras.service import kra_template_service

router = APIRouter(prefix="/api/kras/templates", tags=["ops.kras"])


def _failed(request: Request, exc: HTTPException, code: str) -> JSONResponse:
    return error_response(
        request,
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        details=exc.detail,
    )


@router.get("", response_model=PageRead[KraTemplateRead])
def list_templates(
    request: Request,
    query: ListQuery = Depends(list_query_params),
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.read")),
) -> PageRead[KraTemplateRead] | JSONResponse:
    return page_response(request, kra_template_service.list_templates(db), query, KRA_TEMPLATE_LISTING)


@router.post("", response_model=KraTemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    request: Request,
    dto: KraTemplateCreate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.write")),
) -> KraTemplateRead | JSONResponse:
    try:
        return KraTemplateRecords(db, actor).create(dto)
    except HTTPException as exc:
        return _failed(request, exc, "kra_template_create_failed")


@router.post("/bulk", response_model=BulkActionResponse)
def bulk_templates(
    request: Request,
    payload: BulkActionRequest,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.write")),
) -> BulkActionResponse | JSONResponse:
    return run_bulk_request(
        request,
        executor=kra_template_bulk_executor,
        records=KraTemplateRecords(db, actor),
        payload=payload,
        actor=actor,
        destructive_permission="ops.kras.delete",
    )


@router.get("/{template_id}", response_model=KraTemplateRead)
def get_template(
    request: Request,
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.read")),
) -> KraTemplateRead | JSONResponse:
    try:
        return kra_template_service.get_template(db, template_id)
    except HTTPException as exc:
        return _failed(request, exc, "kra_template_get_failed")


@router.patch("/{template_id}", response_model=KraTemplateRead)
def patch_template(
    request: Request,
    template_id: uuid.UUID,
    dto: KraTemplateUpdate,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.write")),
) -> KraTemplateRead | JSONResponse:
    try:
        return KraTemplateRecords(db, actor).update(str(template_id), dto)
    except HTTPException as exc:
        return _failed(request, exc, "kra_template_update_failed")


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
def delete_template(
    request: Request,
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.delete")),
) -> Response:
    try:
        KraTemplateRecords(db, actor).delete(str(template_id))
    except HTTPException as exc:
        return _failed(request, exc, "kra_template_delete_failed")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/duplicate", response_model=KraTemplateRead, status_code=status.HTTP_201_CREATED)
def duplicate_template(
    request: Request,
    template_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: ActorUser = Depends(require_permissions("ops.kras.write")),
) -> KraTemplateRead | JSONResponse:
    try:
        return KraTemplateRecords(db, actor).duplicate(str(template_id))
    except HTTPException as exc:
        return _failed(request, exc, "kra_template_duplicate_failed")
