from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk import BulkAction, BulkExecutor
from opsdesk.kras.records import KraTemplateRecords


def delete_template(records: KraTemplateRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.delete(record_id)


def activate_template(records: KraTemplateRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"is_active": True})


def deactivate_template(records: KraTemplateRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.update(record_id, {"is_active": False})


def toggle_template_status(records: KraTemplateRecords, record_id: str, params: Mapping[str, Any]) -> None:
    current = records.get(record_id)
    records.update(record_id, {"is_active": not current.is_active})


def duplicate_template(records: KraTemplateRecords, record_id: str, params: Mapping[str, Any]) -> None:
    records.duplicate(record_id)


KRA_TEMPLATE_BULK_ACTIONS = (
    BulkAction("delete", delete_template, verb="Deleted", destructive=True),
    BulkAction("activate", activate_template, verb="Activated"),
    BulkAction("deactivate", deactivate_template, verb="Deactivated"),
    BulkAction("toggle_status", toggle_template_status, verb="Updated"),
    BulkAction("duplicate", duplicate_template, verb="Duplicated"),
)

kra_template_bulk_executor = BulkExecutor("kra_template", "template", KRA_TEMPLATE_BULK_ACTIONS)
