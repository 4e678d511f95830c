from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

Priority = Literal["low", "medium", "high", "critical"]
TaskStatus = Literal["not_started", "assigned", "in_progress", "blocked", "completed", "cancelled", "on_hold"]

PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "critical")
PRIORITY_RANK: dict[str, int] = {name: rank for rank, name in enumerate(PRIORITIES)}
TASK_STATUSES: tuple[str, ...] = (
    "not_started",
    "assigned",
    "in_progress",
    "blocked",
    "completed",
    "cancelled",
    "on_hold",
)


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    kra_id: UUID | None = None
    priority: Priority = "medium"
    status: TaskStatus = "assigned"
    assigned_to: list[str] = Field(default_factory=list)
    team_id: UUID | None = None
    due_date: datetime
    progress: int = Field(default=0, ge=0, le=100)


class TaskUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    kra_id: UUID | None = None
    priority: Priority | None = None
    status: TaskStatus | None = None
    assigned_to: list[str] | None = None
    team_id: UUID | None = None
    due_date: datetime | None = None
    progress: int | None = Field(default=None, ge=0, le=100)


class TaskRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    kra_id: UUID | None
    priority: Priority
    status: TaskStatus
    assigned_to: list[str]
    assigned_by: str
    team_id: UUID | None
    due_date: datetime
    progress: int
    created_at: datetime
    updated_at: datetime


class TaskImportRequest(BaseModel):
    operation_name: str = Field(min_length=1, max_length=255)
    csv_text: str


class BulkTaskOperationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_by: str
    task_ids: list[str]
    total_tasks: int
    successful_tasks: int
    failed_tasks: int
    status: Literal["processing", "completed", "failed"]
    errors: list[str]
    source: str
    created_at: datetime
    completed_at: datetime | None
