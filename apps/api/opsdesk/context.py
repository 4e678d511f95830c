from __future__ import annotations

from contextvars import ContextVar, Token
from dataclasses import dataclass

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

BATCH_ENDPOINTS = frozenset({"bulk", "import"})


def set_correlation_id(value: str | None) -> Token[str | None]:
    return correlation_id_var.set(value)


def reset_correlation_id(token: Token[str | None]) -> None:
    correlation_id_var.reset(token)


def get_correlation_id() -> str | None:
    return correlation_id_var.get()


def resolve_route_group(path: str) -> str:
    """``/api/tasks/42`` -> ``tasks``; batch endpoints get their own group, ``tasks.bulk``."""
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2 or parts[0] != "api":
        return "api"
    group = parts[1]
    if parts[-1] in BATCH_ENDPOINTS:
        return f"{group}.{parts[-1]}"
    return group


@dataclass
class RequestContext:
    correlation_id: str
    route_group: str
    user_id: str | None = None

    @property
    def request_id(self) -> str:
        return self.correlation_id

    @property
    def is_batch(self) -> bool:
        return self.route_group.rpartition(".")[2] in BATCH_ENDPOINTS
