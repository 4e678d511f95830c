from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opsdesk import audit, events
from opsdesk.authz.service import role_directory_service
from opsdesk.teams.models import Team
from opsdesk.users.models import User, utcnow
from opsdesk.users.schemas import UserCreate, UserRead, UserUpdate


class UserService:
    entity_type = "ops.user"

    def list_users(self, session: Session) -> list[UserRead]:
        rows = session.scalars(select(User).order_by(User.full_name.asc(), User.id)).all()
        role_ids = role_directory_service.role_ids_by_user(session, [str(row.id) for row in rows])
        return [self._to_read(row, role_ids.get(str(row.id), [])) for row in rows]

    def get_user(self, session: Session, user_id: uuid.UUID) -> UserRead:
        return self._read(session, self._load(session, user_id))

    def create_user(
        self,
        session: Session,
        actor_user_id: str,
        dto: UserCreate,
        *,
        correlation_id: str | None = None,
    ) -> UserRead:
        if dto.team_id is not None:
            self._ensure_team(session, dto.team_id)

        user = User(
            full_name=dto.full_name.strip(),
            email=str(dto.email).lower(),
            team_id=dto.team_id,
            is_active=dto.is_active,
        )
        session.add(user)
        self._flush(session)
        if dto.role_id is not None:
            role_directory_service.replace_user_role(session, str(user.id), dto.role_id)

        after = self._read(session, user).model_dump(mode="json")
        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(user.id),
            action="create",
            before=None,
            after=after,
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope("ops.user.created", actor_user_id, {"user_id": str(user.id), "email": user.email})
        )
        session.commit()
        session.refresh(user)
        return self._read(session, user)

    def update_user(
        self,
        session: Session,
        actor_user_id: str,
        user_id: uuid.UUID,
        dto: UserUpdate,
        *,
        correlation_id: str | None = None,
    ) -> UserRead:
        user = self._load(session, user_id)
        before = self._read(session, user).model_dump(mode="json")

        changes = dto.model_dump(exclude_unset=True)
        if changes.get("team_id") is not None:
            self._ensure_team(session, changes["team_id"])
        for key, value in changes.items():
            if value is None and key != "team_id":
                continue
            if key == "full_name":
                value = value.strip()
            if key == "email":
                value = str(value).lower()
            setattr(user, key, value)
        user.updated_at = utcnow()
        self._flush(session)

        after = self._read(session, user).model_dump(mode="json")
        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(user.id),
            action="update",
            before=before,
            after=after,
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.user.updated",
                actor_user_id,
                {"user_id": str(user.id), "changed_fields": sorted(changes)},
            )
        )
        session.commit()
        session.refresh(user)
        return self._read(session, user)

    def delete_user(
        self,
        session: Session,
        actor_user_id: str,
        user_id: uuid.UUID,
        *,
        correlation_id: str | None = None,
    ) -> None:
        user = self._load(session, user_id)
        before = self._read(session, user).model_dump(mode="json")
        role_directory_service.clear_user_roles(session, str(user_id))
        session.delete(user)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(user_id),
            action="delete",
            before=before,
            after=None,
            correlation_id=correlation_id,
        )
        events.publish(events.build_envelope("ops.user.deleted", actor_user_id, {"user_id": str(user_id)}))
        session.commit()

    def assign_role(
        self,
        session: Session,
        actor_user_id: str,
        user_id: uuid.UUID,
        role_id: uuid.UUID,
        *,
        correlation_id: str | None = None,
    ) -> UserRead:
        user = self._load(session, user_id)
        before = {"role_ids": [str(item) for item in self._role_ids(session, user)]}
        assignment = role_directory_service.replace_user_role(session, str(user.id), role_id)
        user.updated_at = utcnow()

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(user.id),
            action="role_change",
            before=before,
            after={"role_ids": [str(role_id)]},
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.user.role_changed",
                actor_user_id,
                {"user_id": str(user.id), "role_id": str(role_id), "role_name": assignment.role_name},
            )
        )
        session.commit()
        session.refresh(user)
        return self._read(session, user)

    def _load(self, session: Session, user_id: uuid.UUID) -> User:
        user = session.scalar(select(User).where(User.id == user_id))
        if user is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
        return user

    def _ensure_team(self, session: Session, team_id: uuid.UUID) -> None:
        if session.scalar(select(Team.id).where(Team.id == team_id)) is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="team not found")

    def _flush(self, session: Session) -> None:
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="email already exists")

    def _role_ids(self, session: Session, user: User) -> list[uuid.UUID]:
        return role_directory_service.role_ids_by_user(session, [str(user.id)]).get(str(user.id), [])

    def _read(self, session: Session, user: User) -> UserRead:
        return self._to_read(user, self._role_ids(session, user))

    @staticmethod
    def _to_read(user: User, role_ids: list[uuid.UUID]) -> UserRead:
        payload: dict[str, Any] = {
            "id": user.id,
            "full_name": user.full_name,
            "email": user.email,
            "team_id": user.team_id,
            "is_active": user.is_active,
            "last_login": user.last_login,
            "role_ids": list(role_ids),
            "created_at": user.created_at,
            "updated_at": user.updated_at,
        }
        return UserRead.model_validate(payload)


user_service = UserService()
