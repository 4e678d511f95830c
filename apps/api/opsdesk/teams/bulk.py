from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk import BulkAction, BulkExecutor
from opsdesk.teams.records import TeamRecords


def delete_team(records: TeamRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.delete(record_id)


def activate_team(records: TeamRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"is_active": True})


def deactivate_team(records: TeamRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"is_active": False})


TEAM_BULK_ACTIONS = (
    BulkAction("delete", delete_team, verb="Deleted", destructive=True),
    BulkAction("activate", activate_team, verb="Activated"),
    BulkAction("deactivate", deactivate_team, verb="Deactivated"),
)

team_bulk_executor = BulkExecutor("team", "team", TEAM_BULK_ACTIONS)
