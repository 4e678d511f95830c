from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RoleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    description: str | None = None
    is_system: bool = False


class RoleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    is_system: bool
    created_at: datetime


class UserRoleRead(BaseModel):
    user_id: str
    role_id: UUID
    role_name: str
    created_at: datetime
