from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk import BulkAction, BulkExecutor
from opsdesk.users.records import UserRecords


def delete_user(records: UserRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.delete(record_id)


def activate_user(records: UserRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"is_active": True})


def deactivate_user(records: UserRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"is_active": False})


def change_user_role(records: UserRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.assign_role(record_id, params["role_id"])


def move_user_to_team(records: UserRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"team_id": params["team_id"]})


USER_BULK_ACTIONS = (
    BulkAction("delete", delete_user, verb="Deleted", destructive=True),
    BulkAction("activate", activate_user, verb="Activated"),
    BulkAction("deactivate", deactivate_user, verb="Deactivated"),
    BulkAction("role_change", change_user_role, verb="Updated", required_params=("role_id",)),
    BulkAction("update_team", move_user_to_team, verb="Moved", required_params=("team_id",)),
)

user_bulk_executor = BulkExecutor("user", "user", USER_BULK_ACTIONS)
