from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger("opsdesk.events")


@dataclass(frozen=True)
class InternalEvent:
    name: str
    payload: dict[str, Any]


EventHandler = Callable[[InternalEvent], None]


class InProcessEventBus:
    """Synchronous fan-out to in-process subscribers.

    Services publish inside their unit of work, just before commit. A failing
    subscriber is logged and skipped so it cannot abort that commit.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers[event_name]
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_name: str, handler: EventHandler) -> None:
        handlers = self._handlers.get(event_name)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handlers(self, event_name: str) -> tuple[EventHandler, ...]:
        return tuple(self._handlers.get(event_name, ()))

    def publish(self, event_name: str, payload: dict[str, Any]) -> int:
        event = InternalEvent(name=event_name, payload=payload)
        delivered = 0
        for handler in self.handlers(event_name):
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed", extra={"event_name": event_name})
                continue
            delivered += 1
        return delivered


event_bus = InProcessEventBus()
