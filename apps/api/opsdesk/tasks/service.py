from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from opsdesk import audit, events
from opsdesk.tasks.models import Task, utcnow
from opsdesk.tasks.schemas import TaskCreate, TaskRead, TaskUpdate

_NULLABLE_FIELDS = {"kra_id", "team_id"}


def _snapshot(task: Task) -> dict[str, Any]:
    return TaskRead.model_validate(task).model_dump(mode="json")


class TaskService:
    entity_type = "ops.task"

    def list_tasks(self, session: Session) -> list[TaskRead]:
        rows = session.scalars(select(Task).order_by(Task.created_at.desc(), Task.id)).all()
        return [TaskRead.model_validate(row) for row in rows]

    def get_task(self, session: Session, task_id: uuid.UUID) -> TaskRead:
        return TaskRead.model_validate(self._load(session, task_id))

    def create_task(
        self,
        session: Session,
        actor_user_id: str,
        dto: TaskCreate,
        *,
        correlation_id: str | None = None,
    ) -> TaskRead:
        if not dto.title.strip():
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="title is required")

        task = Task(
            title=dto.title.strip(),
            description=dto.description,
            kra_id=dto.kra_id,
            priority=dto.priority,
            status=dto.status,
            assigned_to=list(dict.fromkeys(dto.assigned_to)),
            assigned_by=actor_user_id,
            team_id=dto.team_id,
            due_date=dto.due_date,
            progress=dto.progress,
        )
        session.add(task)
        session.flush()
        after = _snapshot(task)

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(task.id),
            action="create",
            before=None,
            after=after,
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.task.created",
                actor_user_id,
                {"task_id": str(task.id), "title": task.title, "assigned_to": task.assigned_to},
            )
        )
        session.commit()
        session.refresh(task)
        return TaskRead.model_validate(task)

    def update_task(
        self,
        session: Session,
        actor_user_id: str,
        task_id: uuid.UUID,
        dto: TaskUpdate,
        *,
        correlation_id: str | None = None,
    ) -> TaskRead:
        task = self._load(session, task_id)
        before = _snapshot(task)

        changes = dto.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            if key == "title":
                value = value.strip()
            if key == "assigned_to":
                value = list(dict.fromkeys(value))
            setattr(task, key, value)
        if task.status == "completed":
            task.progress = 100
        task.updated_at = utcnow()
        session.flush()
        after = _snapshot(task)

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(task.id),
            action="update",
            before=before,
            after=after,
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.task.updated",
                actor_user_id,
                {"task_id": str(task.id), "changed_fields": sorted(changes)},
            )
        )
        session.commit()
        session.refresh(task)
        return TaskRead.model_validate(task)

    def delete_task(
        self,
        session: Session,
        actor_user_id: str,
        task_id: uuid.UUID,
        *,
        correlation_id: str | None = None,
    ) -> None:
        task = self._load(session, task_id)
        before = _snapshot(task)

        session.delete(task)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(task_id),
            action="delete",
            before=before,
            after=None,
            correlation_id=correlation_id,
        )
        events.publish(events.build_envelope("ops.task.deleted", actor_user_id, {"task_id": str(task_id)}))
        session.commit()

    def _load(self, session: Session, task_id: uuid.UUID) -> Task:
        task = session.scalar(select(Task).where(Task.id == task_id))
        if task is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="task not found")
        return task


task_service = TaskService()
