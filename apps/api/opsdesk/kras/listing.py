from __future__ import annotations

from typing import Any

from opsdesk.listing import ListingSpec, field_getter, read_field
from opsdesk.tasks.listing import priority_rank


def active_status(record: Any) -> str:
    return "active" if read_field(record, "is_active") else "inactive"


KRA_TEMPLATE_LISTING = ListingSpec(
    search_fields=("title", "description", "target"),
    page_size=10,
    status_getter=active_status,
    sort_keys={
        "title": field_getter("title"),
        "type": field_getter("kra_type"),
        "priority": priority_rank,
        "created_at": field_getter("created_at"),
        "last_generated": field_getter("last_generated"),
    },
)
