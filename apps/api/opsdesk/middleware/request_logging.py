from __future__ import annotations

import logging
import time
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from opsdesk.metrics import observe_http_request, resolve_http_path_label

logger = logging.getLogger("opsdesk.request")


def _request_fields(request: Request, status_code: int, started: float) -> dict[str, Any]:
    context = getattr(request.state, "context", None)
    return {
        "method": request.method,
        "path": resolve_http_path_label(request),
        "route_group": getattr(context, "route_group", None),
        "user_id": getattr(context, "user_id", None),
        "status_code": status_code,
        "duration_ms": round((time.perf_counter() - started) * 1000, 2),
    }


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            fields = _request_fields(request, 500, started)
            observe_http_request(fields["method"], fields["path"], 500, fields["duration_ms"] / 1000)
            logger.error("http.error", exc_info=True, extra=fields)
            raise

        fields = _request_fields(request, response.status_code, started)
        observe_http_request(fields["method"], fields["path"], response.status_code, fields["duration_ms"] / 1000)
        logger.log(logging.WARNING if response.status_code >= 500 else logging.INFO, "http.request", extra=fields)
        return response
