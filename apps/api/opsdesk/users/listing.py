from __future__ import annotations

from typing import Any

from opsdesk.listing import ListingSpec, field_getter, read_field


def active_status(record: Any) -> str:
    return "active" if read_field(record, "is_active") else "inactive"


USER_LISTING = ListingSpec(
    search_fields=("full_name", "email"),
    page_size=8,
    status_getter=active_status,
    sort_keys={
        "name": field_getter("full_name"),
        "email": field_getter("email"),
        "joined": field_getter("created_at"),
        "last_login": field_getter("last_login"),
    },
)
