from __future__ import annotations

from typing import Any

from opsdesk.listing import ListingSpec, field_getter, read_field


def active_status(record: Any) -> str:
    return "active" if read_field(record, "is_active") else "inactive"


def member_count(record: Any) -> int:
    return len(read_field(record, "member_ids") or ())


TEAM_LISTING = ListingSpec(
    search_fields=("name", "description"),
    page_size=6,
    status_getter=active_status,
    sort_keys={
        "name": field_getter("name"),
        "members": member_count,
        "created_at": field_getter("created_at"),
    },
)
