from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk import BulkAction, BulkExecutor
from opsdesk.tasks.records import TaskRecords


def _as_assignees(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def delete_task(records: TaskRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.delete(record_id)


def reassign_task(records: TaskRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"assigned_to": _as_assignees(params["assigned_to"])})


def update_task_status(records: TaskRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"status": params["status"]})


def update_task_priority(records: TaskRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"priority": params["priority"]})


TASK_BULK_ACTIONS = (
    BulkAction("delete", delete_task, verb="Deleted", destructive=True),
    BulkAction("reassign", reassign_task, verb="Reassigned", required_params=("assigned_to",)),
    BulkAction("update_status", update_task_status, verb="Updated", required_params=("status",)),
    BulkAction("update_priority", update_task_priority, verb="Updated", required_params=("priority",)),
)

task_bulk_executor = BulkExecutor("task", "task", TASK_BULK_ACTIONS)
