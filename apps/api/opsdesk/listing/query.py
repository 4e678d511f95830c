from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, Literal, TypeVar

R = TypeVar("R")

SortOrder = Literal["asc", "desc"]
FieldGetter = Callable[[Any], Any]

ALL_STATUSES = "all"


class UnknownSortKeyError(ValueError):
    def __init__(self, sort_by: str, allowed: Iterable[str]) -> None:
        self.sort_by = sort_by
        self.allowed = sorted(allowed)
        super().__init__(f"unknown sort key '{sort_by}'; expected one of: {', '.join(self.allowed)}")


def read_field(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def field_getter(name: str) -> FieldGetter:
    return lambda record: read_field(record, name)


@dataclass(frozen=True, slots=True)
class ListQuery:
    """What a list screen currently asks for. Derived per render, never persisted."""

    search_term: str = ""
    status_filter: str = ALL_STATUSES
    sort_by: str | None = None
    sort_order: SortOrder = "asc"
    page: int = 1

    def with_search(self, search_term: str) -> ListQuery:
        return replace(self, search_term=search_term, page=1)

    def with_status(self, status_filter: str) -> ListQuery:
        return replace(self, status_filter=status_filter or ALL_STATUSES, page=1)

    def with_sort(self, sort_by: str | None, sort_order: SortOrder = "asc") -> ListQuery:
        return replace(self, sort_by=sort_by, sort_order=sort_order)

    def with_page(self, page: int) -> ListQuery:
        return replace(self, page=page)


@dataclass(frozen=True, slots=True)
class ListingSpec:
    """Per-entity listing rules: which fields search reads, how status is derived, how keys sort."""

    search_fields: tuple[str, ...]
    page_size: int
    status_getter: FieldGetter = field_getter("status")
    sort_keys: Mapping[str, FieldGetter] = field(default_factory=dict)
    default_sort: str | None = None

    def resolve_sort_key(self, sort_by: str | None) -> FieldGetter | None:
        name = sort_by or self.default_sort
        if name is None:
            return None
        getter = self.sort_keys.get(name)
        if getter is None:
            raise UnknownSortKeyError(name, self.sort_keys.keys())
        return getter


@dataclass(frozen=True, slots=True)
class Page(Generic[R]):
    items: list[R]
    page: int
    page_size: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def matches_search(record: Any, search_term: str, search_fields: Sequence[str]) -> bool:
    needle = search_term.casefold()
    if not needle:
        return True
    for name in search_fields:
        value = read_field(record, name)
        if value is not None and needle in str(value).casefold():
            return True
    return False


def matches_status(record: Any, status_filter: str, status_getter: FieldGetter) -> bool:
    if not status_filter or status_filter == ALL_STATUSES:
        return True
    return status_getter(record) == status_filter


def filter_records(records: Iterable[R], query: ListQuery, spec: ListingSpec) -> list[R]:
    return [
        record
        for record in records
        if matches_search(record, query.search_term, spec.search_fields)
        and matches_status(record, query.status_filter, spec.status_getter)
    ]


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.timestamp()
    if isinstance(value, date):
        return value.toordinal()
    if isinstance(value, Decimal):
        return float(value)
    return value


def sort_records(records: Iterable[R], key: FieldGetter | None, sort_order: SortOrder = "asc") -> list[R]:
    items = list(records)
    if key is None:
        return items

    # None values trail in both directions
    present = [record for record in items if key(record) is not None]
    missing = [record for record in items if key(record) is None]
    present.sort(key=lambda record: _comparable(key(record)), reverse=sort_order == "desc")
    return present + missing


def count_pages(total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(total / page_size)


def clamp_page(page: int, total_pages: int) -> int:
    if page < 1 or not total_pages:
        return 1
    return min(page, total_pages)


def paginate(records: Sequence[R], page: int, page_size: int) -> Page[R]:
    total = len(records)
    total_pages = count_pages(total, page_size)
    current = clamp_page(page, total_pages)
    start = (current - 1) * page_size
    return Page(
        items=list(records[start : start + page_size]),
        page=current,
        page_size=page_size,
        total=total,
        total_pages=total_pages,
    )


def apply_query(records: Iterable[R], query: ListQuery, spec: ListingSpec) -> Page[R]:
    return paginate(filtered_view(records, query, spec), query.page, spec.page_size)


def filtered_view(records: Iterable[R], query: ListQuery, spec: ListingSpec) -> list[R]:
    key = spec.resolve_sort_key(query.sort_by)
    return sort_records(filter_records(records, query, spec), key, query.sort_order)
