from __future__ import annotations

from typing import Any

from opsdesk.listing import ListingSpec, field_getter, read_field
from opsdesk.tasks.schemas import PRIORITY_RANK


def priority_rank(record: Any) -> int | None:
    return PRIORITY_RANK.get(read_field(record, "priority"))


TASK_LISTING = ListingSpec(
    search_fields=("title", "description"),
    page_size=10,
    sort_keys={
        "title": field_getter("title"),
        "priority": priority_rank,
        "status": field_getter("status"),
        "due_date": field_getter("due_date"),
        "progress": field_getter("progress"),
        "created_at": field_getter("created_at"),
    },
)
