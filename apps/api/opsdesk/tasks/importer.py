from __future__ import annotations

import csv
import io
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import HTTPException
from opentelemetry import trace
from pydantic import ValidationError
from sqlalchemy.orm import Session

from opsdesk import audit, events
from opsdesk.core.auth import ActorUser
from opsdesk.metrics import observe_task_import
from opsdesk.tasks.models import BulkTaskOperation, utcnow
from opsdesk.tasks.records import TaskRecords
from opsdesk.tasks.schemas import PRIORITIES, BulkTaskOperationRead, TaskCreate

logger = logging.getLogger("opsdesk.import")
tracer = trace.get_tracer("opsdesk.import")

REQUIRED_COLUMNS = ("title", "description", "priority", "assignedto", "duedate")
OPTIONAL_COLUMNS = ("teamid", "progress")
DEFAULT_DUE_IN_DAYS = 7
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d-%m-%Y", "%Y/%m/%d")


class CsvFormatError(ValueError):
    pass


@dataclass(frozen=True, slots=True)
class CsvTaskRow:
    row_number: int
    title: str
    description: str
    priority: str
    assigned_to: str
    due_date: str
    team_id: str = ""
    progress: str = ""


def parse_task_csv(csv_text: str) -> list[CsvTaskRow]:
    """Parse CSV text into task rows.

    Header names are matched case-insensitively. Row numbers count the header
    as row 1 so they line up with what a spreadsheet shows.
    """
    reader = csv.reader(io.StringIO(csv_text.lstrip("\ufeff").strip()))
    header = next(reader, None)
    if not header:
        raise CsvFormatError("CSV must have at least a header row and one data row")

    columns = [name.strip().lower() for name in header]
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise CsvFormatError(f"Missing required columns: {', '.join(missing)}")

    rows: list[CsvTaskRow] = []
    for row_number, values in enumerate(reader, start=2):
        cells = [value.strip() for value in values]
        if not any(cells):
            continue
        data = {name: cells[index] if index < len(cells) else "" for index, name in enumerate(columns)}
        rows.append(
            CsvTaskRow(
                row_number=row_number,
                title=data["title"],
                description=data["description"],
                priority=data["priority"],
                assigned_to=data["assignedto"],
                due_date=data["duedate"],
                team_id=data.get("teamid", ""),
                progress=data.get("progress", ""),
            )
        )

    if not rows:
        raise CsvFormatError("CSV must have at least a header row and one data row")
    return rows


def normalize_priority(raw: str) -> str:
    value = raw.strip().lower()
    return value if value in PRIORITIES else "medium"


def parse_due_date(raw: str, *, now: datetime | None = None) -> datetime:
    value = raw.strip()
    parsed: datetime | None = None
    if value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(value, fmt)
                    break
                except ValueError:
                    continue
    if parsed is None:
        return (now or utcnow()) + timedelta(days=DEFAULT_DUE_IN_DAYS)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_task(row: CsvTaskRow) -> TaskCreate:
    progress: Any = 0
    if row.progress:
        try:
            progress = int(row.progress)
        except ValueError:
            raise ValueError(f"progress '{row.progress}' is not a whole number") from None
    return TaskCreate(
        title=row.title,
        description=row.description,
        priority=normalize_priority(row.priority),
        status="assigned",
        assigned_to=[row.assigned_to] if row.assigned_to else [],
        team_id=row.team_id or None,
        due_date=parse_due_date(row.due_date),
        progress=progress,
    )


def _row_failure(exc: Exception) -> str:
    if isinstance(exc, HTTPException):
        return str(exc.detail)
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "row"
        return f"{field}: {first.get('msg', 'invalid value')}"
    return str(exc) or exc.__class__.__name__


class TaskImportService:
    entity_type = "ops.bulk_task_operation"

    def import_csv(self, session: Session, actor: ActorUser, operation_name: str, csv_text: str) -> BulkTaskOperationRead:
        rows = parse_task_csv(csv_text)
        started = time.perf_counter()

        operation = BulkTaskOperation(
            name=operation_name.strip(),
            created_by=actor.user_id,
            task_ids=[],
            total_tasks=len(rows),
            status="processing",
            errors=[],
            source="csv",
        )
        session.add(operation)
        session.commit()
        session.refresh(operation)
        operation_id = operation.id

        records = TaskRecords(session, actor)
        task_ids: list[str] = []
        errors: list[str] = []

        with tracer.start_as_current_span("tasks.import_csv") as span:
            span.set_attribute("operation_id", str(operation_id))
            span.set_attribute("total", len(rows))
            logger.info(
                "task_import.started",
                extra={"operation_id": str(operation_id), "total": len(rows)},
            )

            for row in rows:
                try:
                    created = records.create(_row_to_task(row))
                except Exception as exc:
                    reason = _row_failure(exc)
                    errors.append(f"Row {row.row_number}: {reason}")
                    logger.warning(
                        "task_import.row_failed",
                        extra={"operation_id": str(operation_id), "record_id": str(row.row_number), "error": reason},
                    )
                    continue
                task_ids.append(str(created.id))

            span.set_attribute("success_count", len(task_ids))
            span.set_attribute("failure_count", len(errors))

        operation = session.get(BulkTaskOperation, operation_id)
        operation.task_ids = task_ids
        operation.successful_tasks = len(task_ids)
        operation.failed_tasks = len(errors)
        operation.errors = errors
        operation.status = "failed" if not task_ids else "completed"
        operation.completed_at = utcnow()

        audit.record(
            actor_user_id=actor.user_id,
            entity_type=self.entity_type,
            entity_id=str(operation_id),
            action="import_csv",
            before={"status": "processing"},
            after={"status": operation.status, "successful_tasks": len(task_ids), "failed_tasks": len(errors)},
            correlation_id=actor.correlation_id,
        )
        events.publish(
            events.build_envelope(
                "ops.task_import.completed",
                actor.user_id,
                {
                    "operation_id": str(operation_id),
                    "status": operation.status,
                    "task_ids": task_ids,
                    "failed_tasks": len(errors),
                },
            )
        )
        session.commit()
        session.refresh(operation)

        observe_task_import(len(task_ids), len(errors))
        logger.info(
            "task_import.finished",
            extra={
                "operation_id": str(operation_id),
                "total": len(rows),
                "success_count": len(task_ids),
                "failure_count": len(errors),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return BulkTaskOperationRead.model_validate(operation)

    def get_operation(self, session: Session, operation_id: Any) -> BulkTaskOperationRead:
        operation = session.get(BulkTaskOperation, operation_id)
        if operation is None:
            raise HTTPException(status_code=404, detail="import operation not found")
        return BulkTaskOperationRead.model_validate(operation)


task_import_service = TaskImportService()
