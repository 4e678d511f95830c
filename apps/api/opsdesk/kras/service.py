from __future__ import annotations

import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from opsdesk import audit, events
from opsdesk.kras.models import KraTemplate, utcnow
from opsdesk.kras.schemas import KraTemplateCreate, KraTemplateRead, KraTemplateUpdate

COPY_SUFFIX = " (Copy)"


def _snapshot(template: KraTemplate) -> dict[str, Any]:
    return KraTemplateRead.model_validate(template).model_dump(mode="json")


class KraTemplateService:
    entity_type = "ops.kra_template"

    def list_templates(self, session: Session) -> list[KraTemplateRead]:
        rows = session.scalars(select(KraTemplate).order_by(KraTemplate.created_at.desc(), KraTemplate.id)).all()
        return [KraTemplateRead.model_validate(row) for row in rows]

    def get_template(self, session: Session, template_id: uuid.UUID) -> KraTemplateRead:
        return KraTemplateRead.model_validate(self._load(session, template_id))

    def create_template(
        self,
        session: Session,
        actor_user_id: str,
        dto: KraTemplateCreate,
        *,
        correlation_id: str | None = None,
    ) -> KraTemplateRead:
        if not dto.title.strip():
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="title is required")

        template = KraTemplate(
            title=dto.title.strip(),
            description=dto.description,
            target=dto.target,
            kra_type=dto.kra_type,
            priority=dto.priority,
            assigned_to=list(dict.fromkeys(dto.assigned_to)),
            team_ids=list(dict.fromkeys(dto.team_ids)),
            is_active=dto.is_active,
            created_by=actor_user_id,
        )
        return self._insert(session, actor_user_id, template, action="create", correlation_id=correlation_id)

    def duplicate_template(
        self,
        session: Session,
        actor_user_id: str,
        template_id: uuid.UUID,
        *,
        correlation_id: str | None = None,
    ) -> KraTemplateRead:
        """Copy a template. The copy starts inactive and has never generated KRAs."""
        source = self._load(session, template_id)
        copy = KraTemplate(
            title=f"{source.title}{COPY_SUFFIX}"[:255],
            description=source.description,
            target=source.target,
            kra_type=source.kra_type,
            priority=source.priority,
            assigned_to=list(source.assigned_to),
            team_ids=list(source.team_ids),
            is_active=False,
            last_generated=None,
            created_by=actor_user_id,
        )
        return self._insert(
            session,
            actor_user_id,
            copy,
            action="duplicate",
            correlation_id=correlation_id,
            source_id=source.id,
        )

    def update_template(
        self,
        session: Session,
        actor_user_id: str,
        template_id: uuid.UUID,
        dto: KraTemplateUpdate,
        *,
        correlation_id: str | None = None,
    ) -> KraTemplateRead:
        template = self._load(session, template_id)
        before = _snapshot(template)

        changes = dto.model_dump(exclude_unset=True)
        for key, value in changes.items():
            if value is None and key != "target":
                continue
            if key == "title":
                value = value.strip()
            setattr(template, key, value)
        template.updated_at = utcnow()
        session.flush()

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(template.id),
            action="update",
            before=before,
            after=_snapshot(template),
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.kra_template.updated",
                actor_user_id,
                {"template_id": str(template.id), "changed_fields": sorted(changes)},
            )
        )
        session.commit()
        session.refresh(template)
        return KraTemplateRead.model_validate(template)

    def delete_template(
        self,
        session: Session,
        actor_user_id: str,
        template_id: uuid.UUID,
        *,
        correlation_id: str | None = None,
    ) -> None:
        template = self._load(session, template_id)
        before = _snapshot(template)
        session.delete(template)
        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(template_id),
            action="delete",
            before=before,
            after=None,
            correlation_id=correlation_id,
        )
        events.publish(
            events.build_envelope("ops.kra_template.deleted", actor_user_id, {"template_id": str(template_id)})
        )
        session.commit()

    def _insert(
        self,
        session: Session,
        actor_user_id: str,
        template: KraTemplate,
        *,
        action: str,
        correlation_id: str | None,
        source_id: uuid.UUID | None = None,
    ) -> KraTemplateRead:
        session.add(template)
        session.flush()
        payload: dict[str, Any] = {"template_id": str(template.id), "title": template.title}
        if source_id is not None:
            payload["source_id"] = str(source_id)

        audit.record(
            actor_user_id=actor_user_id,
            entity_type=self.entity_type,
            entity_id=str(template.id),
            action=action,
            before=None,
            after=_snapshot(template),
            correlation_id=correlation_id,
        )
        events.publish(events.build_envelope("ops.kra_template.created", actor_user_id, payload))
        session.commit()
        session.refresh(template)
        return KraTemplateRead.model_validate(template)

    def _load(self, session: Session, template_id: uuid.UUID) -> KraTemplate:
        template = session.scalar(select(KraTemplate).where(KraTemplate.id == template_id))
        if template is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
        return template


kra_template_service = KraTemplateService()
