from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

from opsdesk.tasks.schemas import Priority

KraType = Literal["daily", "weekly", "monthly"]


class KraTemplateCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    target: str | None = None
    kra_type: KraType = "weekly"
    priority: Priority = "medium"
    assigned_to: list[str] = Field(default_factory=list)
    team_ids: list[str] = Field(default_factory=list)
    is_active: bool = True


class KraTemplateUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    target: str | None = None
    kra_type: KraType | None = None
    priority: Priority | None = None
    assigned_to: list[str] | None = None
    team_ids: list[str] | None = None
    is_active: bool | None = None


class KraTemplateRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    target: str | None
    kra_type: KraType
    priority: Priority
    assigned_to: list[str]
    team_ids: list[str]
    is_active: bool
    last_generated: datetime | None
    created_by: str
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"
