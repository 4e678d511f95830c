from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

bulk_action_items_total = Counter(
    "bulk_action_items_total",
    "Bulk action items by outcome",
    ["entity_type", "action", "outcome"],
)

bulk_action_duration_seconds = Histogram(
    "bulk_action_duration_seconds",
    "Bulk action duration in seconds",
    ["entity_type", "action"],
)

bulk_action_rejections_total = Counter(
    "bulk_action_rejections_total",
    "Bulk actions rejected before any item was attempted",
    ["entity_type", "reason"],
)

task_import_rows_total = Counter(
    "task_import_rows_total",
    "CSV task import rows by outcome",
    ["outcome"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        for attribute in ("path_format", "path"):
            route_path = getattr(route, attribute, None)
            if isinstance(route_path, str) and route_path:
                return _PATH_PARAM_RE.sub("{id}", route_path)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_bulk_action(entity_type: str, action: str, succeeded: int, failed: int, duration: float) -> None:
    if succeeded > 0:
        bulk_action_items_total.labels(entity_type=entity_type, action=action, outcome="success").inc(succeeded)
    if failed > 0:
        bulk_action_items_total.labels(entity_type=entity_type, action=action, outcome="failure").inc(failed)
    bulk_action_duration_seconds.labels(entity_type=entity_type, action=action).observe(duration)


def observe_bulk_rejection(entity_type: str, reason: str) -> None:
    bulk_action_rejections_total.labels(entity_type=entity_type, reason=reason).inc()


def observe_task_import(created: int, failed: int) -> None:
    if created > 0:
        task_import_rows_total.labels(outcome="created").inc(created)
    if failed > 0:
        task_import_rows_total.labels(outcome="failed").inc(failed)


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
