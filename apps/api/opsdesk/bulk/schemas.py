from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class BulkActionRequest(BaseModel):
    action: str = Field(min_length=1)
    ids: list[str] = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)
    confirm: bool = False


class BulkActionResponse(BaseModel):
    entity_type: str
    action: str
    success_count: int
    failure_count: int
    failed_ids: list[str]
    errors: list[str]
    message: str
    failure_message: str | None = None
