from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
C = TypeVar("C")


@dataclass
class Holder(Generic[T]):
    value: T


def optimistic_update(holder: Holder[T], apply: Callable[[T], T], commit: Callable[[], C]) -> C:
    """Apply a change locally before the remote call, restoring the snapshot if it fails."""
    snapshot = holder.value
    holder.value = apply(snapshot)
    try:
        return commit()
    except Exception:
        holder.value = snapshot
        raise
