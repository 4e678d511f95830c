from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from threading import Lock

from opsdesk.bulk.errors import BulkActionInProgressError


class BulkActionGuard:
    """Allows one bulk action in flight per (actor, entity type)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._in_flight: set[tuple[str, str]] = set()

    def is_running(self, actor_user_id: str, entity_type: str) -> bool:
        with self._lock:
            return (actor_user_id, entity_type) in self._in_flight

    @contextmanager
    def hold(self, actor_user_id: str, entity_type: str) -> Iterator[None]:
        key = (actor_user_id, entity_type)
        with self._lock:
            if key in self._in_flight:
                raise BulkActionInProgressError(entity_type)
            self._in_flight.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._in_flight.discard(key)

    def reset(self) -> None:
        with self._lock:
            self._in_flight.clear()


bulk_action_guard = BulkActionGuard()


def reset_bulk_action_guard() -> None:
    bulk_action_guard.reset()
