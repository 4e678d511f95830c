from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field


class UserCreate(BaseModel):
    full_name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    team_id: UUID | None = None
    is_active: bool = True
    role_id: UUID | None = None


class UserUpdate(BaseModel):
    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    team_id: UUID | None = None
    is_active: bool | None = None


class AssignRoleRequest(BaseModel):
    role_id: UUID


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    team_id: UUID | None
    is_active: bool
    last_login: datetime | None
    role_ids: list[UUID] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def status(self) -> str:
        return "active" if self.is_active else "inactive"
