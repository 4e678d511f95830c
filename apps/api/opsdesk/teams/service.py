from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opsdesk import audit, events
from opsdesk.teams.models import Team, utcnow
from opsdesk.teams.schemas import TeamCreate, TeamRead, TeamUpdate

_NULLABLE_FIELDS = {"manager_id", "parent_id"}


def _snapshot(team: Team) -> dict[str, Any]:
    return TeamRead.model_validate(team).model_dump(mode="json")


class TeamService:
    entity_type = "ops.team"

    def list_teams(self, session: Session) -> list[TeamRead]:
        rows = session.scalars(select(Team).order_by(Team.name.asc())).all()
        return [TeamRead.model_validate(row) for row in rows]

    def get_team(self, session: Session, team_id: uuid.UUID) -> TeamRead:
        return TeamRead.model_validate(self._load(session, team_id))

    def create_team(
        self,
        session: Session,
        actor_user_id: str,
        dto: TeamCreate,
        *,
        correlation_id: str | None = None,
    ) -> TeamRead:
        name = dto.name.strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="name is required")

        team = Team(
            name=name,
            description=dto.description,
            manager_id=dto.manager_id,
            member_ids=list(dict.fromkeys(dto.member_ids)),
            parent_id=dto.parent_id,
            is_active=dto.is_active,
        )
        session.add(team)
        self._flush(session)

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(team.id),
            action="create",
            before=None,
            after=_snapshot(team),
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope("ops.team.created", actor_user_id, {"team_id": str(team.id), "name": team.name})
        )
        session.commit()
        session.refresh(team)
        return TeamRead.model_validate(team)

    def update_team(
        self,
        session: Session,
        actor_user_id: str,
        team_id: uuid.UUID,
        dto: TeamUpdate,
        *,
        correlation_id: str | None = None,
    ) -> TeamRead:
        team = self._load(session, team_id)
        before = _snapshot(team)

        changes = dto.model_dump(exclude_unset=True)
        if changes.get("parent_id") == team.id:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="team cannot be its own parent")
        for key, value in changes.items():
            if value is None and key not in _NULLABLE_FIELDS:
                continue
            if key == "name":
                value = value.strip()
            if key == "member_ids":
                value = list(dict.fromkeys(value))
            setattr(team, key, value)
        team.updated_at = utcnow()
        self._flush(session)

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(team.id),
            action="update",
            before=before,
            after=_snapshot(team),
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.team.updated",
                actor_user_id,
                {"team_id": str(team.id), "changed_fields": sorted(changes)},
            )
        )
        session.commit()
        session.refresh(team)
        return TeamRead.model_validate(team)

    def delete_team(
        self,
        session: Session,
        actor_user_id: str,
        team_id: uuid.UUID,
        *,
        correlation_id: str | None = None,
    ) -> None:
        team = self._load(session, team_id)
        before = _snapshot(team)
        session.delete(team)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(team_id),
            action="delete",
            before=before,
            after=None,
            correlation_id=correlation_id,
        )
        events.publish(events.build_envelope("ops.team.deleted", actor_user_id, {"team_id": str(team_id)}))
        session.commit()

    def _load(self, session: Session, team_id: uuid.UUID) -> Team:
        team = session.scalar(select(Team).where(Team.id == team_id))
        if team is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="team not found")
        return team

    def _flush(self, session: Session) -> None:
        try:
            session.flush()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="team name already exists")


team_service = TeamService()
