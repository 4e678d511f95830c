from __future__ import annotations

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol

from sqlalchemy.orm import Session

from opsdesk.core.auth import ActorUser


class RecordService(Protocol):
    """The per-entity surface bulk handlers and list screens drive."""

    def list(self) -> list[Any]: ...

    def create(self, data: Any) -> Any: ...

    def update(self, record_id: str, patch: Any) -> Any: ...

    def delete(self, record_id: str) -> None: ...


def parse_record_id(raw: str | uuid.UUID) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except ValueError as exc:
        raise ValueError("invalid id") from exc


class SessionRecords:
    """Binds a session and an acting user to an entity service.

    Each call is its own unit of work: the service commits on success, and a
    failure rolls the session back before re-raising so the next call starts
    from a clean session.
    """

    def __init__(self, session: Session, actor: ActorUser) -> None:
        self.session = session
        self.actor = actor

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        try:
            yield
        except Exception:
            self.session.rollback()
            raise
