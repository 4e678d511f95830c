from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from opsdesk.bulk.records import SessionRecords, parse_record_id
from opsdesk.kras.schemas import KraTemplateCreate, KraTemplateRead, KraTemplateUpdate
from opsdesk.kras.service import kra_template_service


class KraTemplateRecords(SessionRecords):
    def list(self) -> list[KraTemplateRead]:
        return kra_template_service.list_templates(self.session)

    def get(self, record_id: str) -> KraTemplateRead:
        return kra_template_service.get_template(self.session, parse_record_id(record_id))

    def create(self, data: KraTemplateCreate | Mapping[str, Any]) -> KraTemplateRead:
        with self.unit_of_work():
            dto = data if isinstance(data, KraTemplateCreate) else KraTemplateCreate.model_validate(data)
            return kra_template_service.create_template(
                self.session, self.actor.user_id, dto, correlation_id=self.actor.correlation_id
            )

    def update(self, record_id: str, patch: KraTemplateUpdate | Mapping[str, Any]) -> KraTemplateRead:
        with self.unit_of_work():
            template_id = parse_record_id(record_id)
            dto = patch if isinstance(patch, KraTemplateUpdate) else KraTemplateUpdate.model_validate(patch)
            return kra_template_service.update_template(
                self.session, self.actor.user_id, template_id, dto, correlation_id=self.actor.correlation_id
            )

    def delete(self, record_id: str) -> None:
        with self.unit_of_work():
            kra_template_service.delete_template(
                self.session,
                self.actor.user_id,
                parse_record_id(record_id),
                correlation_id=self.actor.correlation_id,
            )

    def duplicate(self, record_id: str) -> KraTemplateRead:
        with self.unit_of_work():
            return kra_template_service.duplicate_template(
                self.session,
                self.actor.user_id,
                parse_record_id(record_id),
                correlation_id=self.actor.correlation_id,
            )
