from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk.records import SessionRecords, parse_record_id
from opsdesk.users.schemas import UserCreate, UserRead, UserUpdate
from opsdesk.users.service import user_service


class UserRecords(SessionRecords):
    def list(self) -> list[UserRead]:
        return user_service.list_users(self.session)

    def create(self, data: UserCreate | Mapping[str, Any]) -> UserRead:
        with self.unit_of_work():
            dto = data if isinstance(data, UserCreate) else UserCreate.model_validate(data)
            return user_service.create_user(
                self.session, self.actor.user_id, dto, correlation_id=self.actor.correlation_id
            )

    def update(self, record_id: str, patch: UserUpdate | Mapping[str, Any]) -> UserRead:
        with self.unit_of_work():
            user_id = parse_record_id(record_id)
            dto = patch if isinstance(patch, UserUpdate) else UserUpdate.model_validate(patch)
            return user_service.update_user(
                self.session, self.actor.user_id, user_id, dto, correlation_id=self.actor.correlation_id
            )

    def delete(self, record_id: str) -> None:
        with self.unit_of_work():
            user_service.delete_user(
                self.session,
                self.actor.user_id,
                parse_record_id(record_id),
                correlation_id=self.actor.correlation_id,
            )

    def assign_role(self, record_id: str, role_id: Any) -> UserRead:
        with self.unit_of_work():
            return user_service.assign_role(
                self.session,
                self.actor.user_id,
                parse_record_id(record_id),
                parse_record_id(role_id),
                correlation_id=self.actor.correlation_id,
            )
