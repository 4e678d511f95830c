from __future__ import annotations

import math
import threading
import time
from dataclasses import dataclass

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from opsdesk.api.errors import error_response
from opsdesk.context import RequestContext, resolve_route_group
from opsdesk.core.config import Settings, get_settings

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
WINDOW_SECONDS = 60


@dataclass
class TokenBucket:
    capacity: int
    tokens: float
    refilled_at: float

    def take(self, now: float) -> int:
        """Spend one token. Returns 0 on success, else seconds until one is available."""
        rate = self.capacity / WINDOW_SECONDS
        self.tokens = min(float(self.capacity), self.tokens + max(0.0, now - self.refilled_at) * rate)
        self.refilled_at = now
        if self.tokens >= 1.0:
            self.tokens -= 1.0
            return 0
        return max(1, math.ceil((1.0 - self.tokens) / rate))


class MutationRateLimiter:
    """One bucket per (actor, route group)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[tuple[str, str], TokenBucket] = {}

    def take(self, actor: str, route_group: str, capacity: int) -> int:
        if capacity <= 0:
            return WINDOW_SECONDS
        now = time.monotonic()
        with self._lock:
            bucket = self._buckets.get((actor, route_group))
            if bucket is None or bucket.capacity != capacity:
                bucket = TokenBucket(capacity=capacity, tokens=float(capacity), refilled_at=now)
                self._buckets[(actor, route_group)] = bucket
            return bucket.take(now)

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()


_limiter = MutationRateLimiter()


def capacity_for(context: RequestContext, settings: Settings) -> int:
    if context.is_batch:
        return settings.rate_limit_batch_per_minute
    return settings.rate_limit_mutations_per_minute


class MutationRateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        settings = get_settings()
        if (
            settings.rate_limit_disabled
            or request.method.upper() not in MUTATING_METHODS
            or not request.url.path.startswith("/api/")
        ):
            return await call_next(request)

        context = getattr(request.state, "context", None)
        if not isinstance(context, RequestContext):
            context = RequestContext(correlation_id="", route_group=resolve_route_group(request.url.path))

        retry_after = _limiter.take(_actor_key(request, settings), context.route_group, capacity_for(context, settings))
        if not retry_after:
            return await call_next(request)

        return error_response(
            request,
            status_code=429,
            code="RATE_LIMITED",
            message="Too many requests",
            details={"route_group": context.route_group},
            headers={"Retry-After": str(retry_after)},
        )


def _actor_key(request: Request, settings: Settings) -> str:
    header = request.headers.get("authorization", "")
    if not header.startswith("Bearer "):
        return "anonymous"
    try:
        claims = jwt.decode(header[len("Bearer ") :], settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return "anonymous"
    subject = claims.get("sub")
    return "anonymous" if subject is None else str(subject)


def reset_rate_limiter() -> None:
    _limiter.clear()
