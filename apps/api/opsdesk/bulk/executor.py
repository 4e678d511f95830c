from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from fastapi import HTTPException
from opentelemetry import trace
from pydantic import ValidationError

from opsdesk import events
from opsdesk.context import get_correlation_id
from opsdesk.bulk.errors import (
    BulkActionParamsError,
    BulkSelectionTooLargeError,
    EmptyBulkSelectionError,
    UnknownBulkActionError,
)
from opsdesk.metrics import observe_bulk_action

logger = logging.getLogger("opsdesk.bulk")
tracer = trace.get_tracer("opsdesk.bulk")

ItemHandler = Callable[[Any, str, Mapping[str, Any]], None]


@dataclass(frozen=True, slots=True)
class BulkAction:
    """One dispatch table entry: how to apply ``name`` to a single record."""

    name: str
    handler: ItemHandler
    verb: str
    required_params: tuple[str, ...] = ()
    destructive: bool = False

    def missing_params(self, params: Mapping[str, Any]) -> list[str]:
        return [key for key in self.required_params if params.get(key) in (None, "")]


@dataclass(slots=True)
class BulkActionResult:
    success_count: int = 0
    failure_count: int = 0
    failed_ids: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + self.failure_count


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    record_id: str
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True, slots=True)
class BulkSummary:
    message: str
    failure_message: str | None = None


def describe_failure(exc: BaseException) -> str:
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    if isinstance(exc, ValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
    return str(exc) or exc.__class__.__name__


def pluralize(noun: str, count: int) -> str:
    if count == 1:
        return noun
    if noun.endswith("s"):
        return f"{noun}es"
    return f"{noun}s"


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(str(record_id) for record_id in ids))


def collect_outcomes(outcomes: Iterable[ItemOutcome], noun: str) -> BulkActionResult:
    result = BulkActionResult()
    label = noun[:1].upper() + noun[1:]
    for outcome in outcomes:
        if outcome.ok:
            result.success_count += 1
            continue
        result.failure_count += 1
        result.failed_ids.append(outcome.record_id)
        result.errors.append(f"{label} {outcome.record_id}: {outcome.error}")
    return result


def summarize(action: BulkAction, result: BulkActionResult, noun: str) -> BulkSummary:
    message = f"{action.verb} {result.success_count} {pluralize(noun, result.success_count)}"
    failure_message = f"Failed: {result.failure_count}" if result.failure_count else None
    return BulkSummary(message=message, failure_message=failure_message)


class BulkExecutor:
    """Applies one named action to many records, tallying per-item outcomes.

    Validation (known action, required params, non-empty selection) happens
    before any record is touched and raises. Once items are being applied,
    each id is settled independently: an item's exception is logged and
    counted, and the loop moves on. Items already applied stay applied.
    """

    def __init__(
        self,
        entity_type: str,
        noun: str,
        actions: Iterable[BulkAction],
        *,
        max_ids: int | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.noun = noun
        self.actions: dict[str, BulkAction] = {action.name: action for action in actions}
        self.max_ids = max_ids

    def get_action(self, action_type: str) -> BulkAction:
        action = self.actions.get(action_type)
        if action is None:
            raise UnknownBulkActionError(self.entity_type, action_type, self.actions)
        return action

    def validate(
        self,
        action_type: str,
        ids: Sequence[str],
        params: Mapping[str, Any] | None = None,
        *,
        max_ids: int | None = None,
    ) -> tuple[BulkAction, list[str]]:
        action = self.get_action(action_type)
        missing = action.missing_params(params or {})
        if missing:
            raise BulkActionParamsError(self.entity_type, action_type, missing)

        targets = dedupe_ids(ids)
        if not targets:
            raise EmptyBulkSelectionError(self.entity_type)
        limit = max_ids if max_ids is not None else self.max_ids
        if limit is not None and len(targets) > limit:
            raise BulkSelectionTooLargeError(self.entity_type, len(targets), limit)
        return action, targets

    def execute(
        self,
        action_type: str,
        ids: Sequence[str],
        params: Mapping[str, Any] | None,
        records: Any,
        *,
        actor_user_id: str = "system",
        max_ids: int | None = None,
    ) -> BulkActionResult:
        params = dict(params or {})
        action, targets = self.validate(action_type, ids, params, max_ids=max_ids)
        started = time.perf_counter()

        with tracer.start_as_current_span("bulk.execute") as span:
            span.set_attribute("entity_type", self.entity_type)
            span.set_attribute("action", action.name)
            span.set_attribute("total", len(targets))
            correlation_id = get_correlation_id()
            if correlation_id:
                span.set_attribute("correlation_id", correlation_id)

            logger.info(
                "bulk_action.started",
                extra={"entity_type": self.entity_type, "action": action.name, "total": len(targets)},
            )
            outcomes = [self._settle(action, records, record_id, params) for record_id in targets]
            result = collect_outcomes(outcomes, self.noun)

            span.set_attribute("success_count", result.success_count)
            span.set_attribute("failure_count", result.failure_count)

        duration = time.perf_counter() - started
        observe_bulk_action(self.entity_type, action.name, result.success_count, result.failure_count, duration)
        logger.info(
            "bulk_action.finished",
            extra={
                "entity_type": self.entity_type,
                "action": action.name,
                "total": result.total,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
                "duration_ms": round(duration * 1000, 2),
            },
        )
        events.publish(
            events.build_envelope(
                "ops.bulk_action.completed",
                actor_user_id,
                {
                    "entity_type": self.entity_type,
                    "action": action.name,
                    "params": params,
                    "record_ids": targets,
                    "success_count": result.success_count,
                    "failure_count": result.failure_count,
                    "failed_ids": list(result.failed_ids),
                },
            )
        )
        return result

    def _settle(self, action: BulkAction, records: Any, record_id: str, params: Mapping[str, Any]) -> ItemOutcome:
        try:
            action.handler(records, record_id, params)
        except Exception as exc:
            reason = describe_failure(exc)
            logger.warning(
                "bulk_action.item_failed",
                extra={
                    "entity_type": self.entity_type,
                    "action": action.name,
                    "record_id": record_id,
                    "error": reason,
                },
            )
            return ItemOutcome(record_id=record_id, error=reason)
        return ItemOutcome(record_id=record_id)
