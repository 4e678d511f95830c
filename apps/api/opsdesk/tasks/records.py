from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk.records import SessionRecords, parse_record_id
from opsdesk.tasks.schemas import TaskCreate, TaskRead, TaskUpdate
from opsdesk.tasks.service import task_service


class TaskRecords(SessionRecords):
    def list(self) -> list[TaskRead]:
        return task_service.list_tasks(self.session)

    def create(self, data: TaskCreate | Mapping[str, Any]) -> TaskRead:
        with self.unit_of_work():
            dto = data if isinstance(data, TaskCreate) else TaskCreate.model_validate(data)
            return task_service.create_task(
                self.session,
                self.actor.user_id,
                dto,
                correlation_id=self.actor.correlation_id,
            )

    def update(self, record_id: str, patch: TaskUpdate | Mapping[str, Any]) -> TaskRead:
        with self.unit_of_work():
            task_id = parse_record_id(record_id)
            dto = patch if isinstance(patch, TaskUpdate) else TaskUpdate.model_validate(patch)
            return task_service.update_task(
                self.session,
                self.actor.user_id,
                task_id,
                dto,
                correlation_id=self.actor.correlation_id,
            )

    def delete(self, record_id: str) -> None:
        with self.unit_of_work():
            task_service.delete_task(
                self.session,
                self.actor.user_id,
                parse_record_id(record_id),
                correlation_id=self.actor.correlation_id,
            )
