from __future__ import annotations

import uuid

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from opsdesk.context import RequestContext, reset_correlation_id, resolve_route_group, set_correlation_id

MAX_CORRELATION_ID_LENGTH = 128


def _incoming_correlation_id(request: Request) -> str:
    raw = (request.headers.get("x-correlation-id") or "").strip()
    return raw[:MAX_CORRELATION_ID_LENGTH] if raw else str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: pins the correlation id and route group for the whole request."""

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        context = RequestContext(
            correlation_id=_incoming_correlation_id(request),
            route_group=resolve_route_group(request.url.path),
        )
        request.state.context = context
        request.state.correlation_id = context.correlation_id

        span = trace.get_current_span()
        if span.is_recording():
            span.set_attribute("correlation_id", context.correlation_id)
            span.set_attribute("route_group", context.route_group)

        token = set_correlation_id(context.correlation_id)
        try:
            response = await call_next(request)
        finally:
            reset_correlation_id(token)

        response.headers["x-correlation-id"] = context.correlation_id
        response.headers["x-request-id"] = context.request_id
        return response
