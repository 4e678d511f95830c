from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from opsdesk.context import get_correlation_id
from opsdesk.core.config import get_settings

# Extras a log call may attach. Anything else passed via ``extra`` is dropped from output.
LOG_FIELDS = frozenset(
    {
        "method",
        "path",
        "route_group",
        "status_code",
        "duration_ms",
        "user_id",
        "entity_type",
        "action",
        "record_id",
        "operation_id",
        "total",
        "success_count",
        "failure_count",
        "event_name",
        "error",
    }
)
MAX_ERROR_LENGTH = 500

_base_factory = logging.getLogRecordFactory()


def _record_with_correlation_id(*args: Any, **kwargs: Any) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    record.correlation_id = get_correlation_id()
    return record


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        fields = {name: record.__dict__[name] for name in LOG_FIELDS if name in record.__dict__}
        if isinstance(fields.get("error"), str):
            fields["error"] = fields["error"][:MAX_ERROR_LENGTH]
        if record.exc_info:
            fields["exception"] = self.formatException(record.exc_info)

        return json.dumps(
            {
                "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
                "correlation_id": getattr(record, "correlation_id", None),
                "fields": fields,
            },
            default=str,
        )


def configure_logging(level: str | None = None) -> None:
    """Route everything through one stdout JSON handler. Safe to call more than once."""
    root = logging.getLogger()
    if getattr(root, "_opsdesk_configured", False):
        return

    resolved = logging.getLevelName((level or get_settings().log_level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonLogFormatter())

    logging.setLogRecordFactory(_record_with_correlation_id)
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(resolved)
    root._opsdesk_configured = True  # type: ignore[attr-defined]
