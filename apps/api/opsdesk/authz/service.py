from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable

from fastapi import HTTPException, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from opsdesk.authz.models import Role, UserRole
from opsdesk.authz.schemas import RoleCreate, RoleRead, UserRoleRead


class RoleDirectoryService:
    def create_role(self, session: Session, dto: RoleCreate) -> RoleRead:
        role = Role(name=dto.name.strip(), description=dto.description, is_system=dto.is_system)
        session.add(role)
        try:
            session.commit()
        except IntegrityError:
            session.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="role already exists")
        session.refresh(role)
        return RoleRead.model_validate(role)

    def list_roles(self, session: Session) -> list[RoleRead]:
        rows = session.scalars(select(Role).order_by(Role.name.asc())).all()
        return [RoleRead.model_validate(row) for row in rows]

    def get_role(self, session: Session, role_id: uuid.UUID) -> Role:
        role = session.scalar(select(Role).where(Role.id == role_id))
        if role is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="role not found")
        return role

    def delete_role(self, session: Session, role_id: uuid.UUID) -> None:
        role = self.get_role(session, role_id)
        if role.is_system:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="system role cannot be deleted")
        session.execute(delete(UserRole).where(UserRole.role_id == role_id))
        session.delete(role)
        session.commit()

    def replace_user_role(self, session: Session, user_id: str, role_id: uuid.UUID) -> UserRoleRead:
        """Make ``role_id`` the user's only role. The caller commits."""
        role = self.get_role(session, role_id)
        session.execute(delete(UserRole).where(UserRole.user_id == user_id))
        mapping = UserRole(user_id=user_id, role_id=role.id)
        session.add(mapping)
        session.flush()
        return UserRoleRead(user_id=user_id, role_id=role.id, role_name=role.name, created_at=mapping.created_at)

    def clear_user_roles(self, session: Session, user_id: str) -> None:
        session.execute(delete(UserRole).where(UserRole.user_id == user_id))

    def role_ids_by_user(self, session: Session, user_ids: Iterable[str]) -> dict[str, list[uuid.UUID]]:
        wanted = list(user_ids)
        result: dict[str, list[uuid.UUID]] = defaultdict(list)
        if not wanted:
            return result
        rows = session.scalars(
            select(UserRole).where(UserRole.user_id.in_(wanted)).order_by(UserRole.created_at.asc())
        ).all()
        for row in rows:
            result[row.user_id].append(row.role_id)
        return result


role_directory_service = RoleDirectoryService()
