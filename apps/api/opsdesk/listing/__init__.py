from opsdesk.listing.query import (
    ALL_STATUSES,
    ListQuery,
    ListingSpec,
    Page,
    SortOrder,
    UnknownSortKeyError,
    apply_query,
    clamp_page,
    count_pages,
    field_getter,
    filter_records,
    filtered_view,
    paginate,
    read_field,
    sort_records,
)

__all__ = [
    "ALL_STATUSES",
    "ListQuery",
    "ListingSpec",
    "Page",
    "SortOrder",
    "UnknownSortKeyError",
    "apply_query",
    "clamp_page",
    "count_pages",
    "field_getter",
    "filter_records",
    "filtered_view",
    "paginate",
    "read_field",
    "sort_records",
]
