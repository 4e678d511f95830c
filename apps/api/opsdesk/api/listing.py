from __future__ import annotations

from collections.abc import Iterable
from typing import Generic, Literal, TypeVar

from fastapi import Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.requests import Request

from opsdesk.api.errors import error_response
from opsdesk.listing import ListingSpec, ListQuery, UnknownSortKeyError, apply_query

T = TypeVar("T")


class PageRead(BaseModel, Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total: int
    total_pages: int


def list_query_params(
    search: str = Query(default=""),
    status_filter: str = Query(default="all", alias="status"),
    sort_by: str | None = Query(default=None),
    sort_order: Literal["asc", "desc"] = Query(default="asc"),
    page: int = Query(default=1),
) -> ListQuery:
    return ListQuery(
        search_term=search,
        status_filter=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
    )


def page_response(
    request: Request,
    records: Iterable[T],
    query: ListQuery,
    spec: ListingSpec,
) -> PageRead[T] | JSONResponse:
    try:
        page = apply_query(records, query, spec)
    except UnknownSortKeyError as exc:
        return error_response(
            request,
            status_code=422,
            code="UNKNOWN_SORT_KEY",
            message=str(exc),
            details={"sort_by": exc.sort_by, "allowed": exc.allowed},
        )
    return PageRead(
        items=page.items,
        page=page.page,
        page_size=page.page_size,
        total=page.total,
        total_pages=page.total_pages,
    )
