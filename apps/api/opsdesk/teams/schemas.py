from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class TeamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    manager_id: str | None = None
    member_ids: list[str] = Field(default_factory=list)
    parent_id: UUID | None = None
    is_active: bool = True


class TeamUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    manager_id: str | None = None
    member_ids: list[str] | None = None
    parent_id: UUID | None = None
    is_active: bool | None = None


class TeamRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str
    manager_id: str | None
    member_ids: list[str]
    parent_id: UUID | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"

    @computed_field
    @property
    def member_count(self) -> int:
        return len(self.member_ids)
