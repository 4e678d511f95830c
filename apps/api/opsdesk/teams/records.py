from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk.records import SessionRecords, parse_record_id
from opsdesk.teams.schemas import TeamCreate, TeamRead, TeamUpdate
from opsdesk.teams.service import team_service


class TeamRecords(SessionRecords):
    def list(self) -> list[TeamRead]:
        return team_service.list_teams(self.session)

    def create(self, data: TeamCreate | Mapping[str, Any]) -> TeamRead:
        with self.unit_of_work():
            dto = data if isinstance(data, TeamCreate) else TeamCreate.model_validate(data)
            return team_service.create_team(
                self.session, self.actor.user_id, dto, correlation_id=self.actor.correlation_id
            )

    def update(self, record_id: str, patch: TeamUpdate | Mapping[str, Any]) -> TeamRead:
        with self.unit_of_work():
            team_id = parse_record_id(record_id)
            dto = patch if isinstance(patch, TeamUpdate) else TeamUpdate.model_validate(patch)
            return team_service.update_team(
                self.session, self.actor.user_id, team_id, dto, correlation_id=self.actor.correlation_id
            )

    def delete(self, record_id: str) -> None:
        with self.unit_of_work():
            team_service.delete_team(
                self.session,
                self.actor.user_id,
                parse_record_id(record_id),
                correlation_id=self.actor.correlation_id,
            )
