from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from opsdesk.api.routes import router as api_router
from opsdesk.core.config import get_settings
from opsdesk.core.events import InternalEvent, event_bus
from opsdesk.logging import configure_logging
from opsdesk.middleware.rate_limit import MutationRateLimitMiddleware
from opsdesk.middleware.request_context import RequestContextMiddleware
from opsdesk.middleware.request_logging import RequestLoggingMiddleware
from opsdesk.otel import server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("opsdesk.lifecycle")


def _on_system_started(event: InternalEvent) -> None:
    logger.info("system_event", extra={"event_name": event.name})


def _on_bulk_action_completed(event: InternalEvent) -> None:
    payload = event.payload.get("payload") or {}
    logger.info(
        "bulk_action.completed",
        extra={
            "event_name": event.name,
            "user_id": event.payload.get("actor_user_id"),
            "entity_type": payload.get("entity_type"),
            "action": payload.get("action"),
            "success_count": payload.get("success_count"),
            "failure_count": payload.get("failure_count"),
        },
    )


def _on_task_import_completed(event: InternalEvent) -> None:
    payload = event.payload.get("payload") or {}
    logger.info(
        "task_import.completed",
        extra={
            "event_name": event.name,
            "operation_id": payload.get("operation_id"),
            "success_count": len(payload.get("task_ids") or ()),
            "failure_count": payload.get("failed_tasks"),
        },
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # subscribe() ignores handlers that are already registered
    event_bus.subscribe("system.started", _on_system_started)
    event_bus.subscribe("ops.bulk_action.completed", _on_bulk_action_completed)
    event_bus.subscribe("ops.task_import.completed", _on_task_import_completed)
    event_bus.publish("system.started", {"service": "api"})
    yield


settings = get_settings()
app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

# Last added runs first: context, then logging, then the limiter.
app.add_middleware(MutationRateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestContextMiddleware)
app.include_router(api_router)

setup_otel(settings)
if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=server_request_hook)
