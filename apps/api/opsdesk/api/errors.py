from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from typing import Any

from fastapi.responses import JSONResponse
from starlette.requests import Request

from opsdesk.context import get_correlation_id


@dataclass
class ErrorEnvelope:
    code: str
    message: str
    details: Any
    correlation_id: str | None


def resolve_correlation_id(request: Request) -> str:
    return (
        get_correlation_id()
        or getattr(request.state, "correlation_id", None)
        or request.headers.get("x-correlation-id")
        or str(uuid.uuid4())
    )


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    payload = ErrorEnvelope(
        code=code,
        message=message,
        details=details,
        correlation_id=resolve_correlation_id(request),
    )
    return JSONResponse(status_code=status_code, content=asdict(payload), headers=headers)
