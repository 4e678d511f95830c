from __future__ import annotations

import uuid
from collections.abc import Generator
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from opsdesk import audit, events
from opsdesk.bulk import bulk_action_guard, reset_bulk_action_guard
from opsdesk.core.auth import ActorUser, get_current_actor
from opsdesk.core.config import get_settings
from opsdesk.core.database import Base, get_db
from opsdesk.main import app

TASK_PERMISSIONS = {"ops.tasks.read", "ops.tasks.write", "ops.tasks.delete"}


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
    get_settings.cache_clear()
    reset_bulk_action_guard()
    audit.audit_entries.clear()
    events.published_events.clear()
    yield
    reset_bulk_action_guard()
    get_settings.cache_clear()


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def permissions() -> set[str]:
    return set(TASK_PERMISSIONS)


@pytest.fixture()
def client(db_session: Session, permissions: set[str]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_actor() -> ActorUser:
        return ActorUser(user_id="user-1", permissions=permissions, correlation_id="corr-test")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = override_get_current_actor
    with TestClient(app) as test_client:
        test_client.headers.update({"x-correlation-id": "corr-test"})
        yield test_client
    app.dependency_overrides.clear()


def _create_task(client: TestClient, title: str, **overrides: Any) -> dict[str, Any]:
    payload = {"title": title, "due_date": "2026-11-01T09:00:00Z", **overrides}
    response = client.post("/api/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_task_success(client: TestClient) -> None:
    body = _create_task(client, "Prepare audit", priority="high", assigned_to=["u-1", "u-1", "u-2"])

    assert body["title"] == "Prepare audit"
    assert body["priority"] == "high"
    assert body["status"] == "assigned"
    assert body["assigned_to"] == ["u-1", "u-2"]
    assert body["assigned_by"] == "user-1"
    assert any(entry["action"] == "create" for entry in audit.audit_entries)
    assert any(event["event_type"] == "ops.task.created" for event in events.published_events)


def test_create_task_requires_due_date(client: TestClient) -> None:
    response = client.post("/api/tasks", json={"title": "No deadline"})
    assert response.status_code == 422


def test_update_task_to_completed_sets_full_progress(client: TestClient) -> None:
    task = _create_task(client, "Ship release", progress=40)

    response = client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"})

    assert response.status_code == 200
    assert response.json()["progress"] == 100
    update_entry = audit.entries_for("ops.task", task["id"])[-1]
    assert update_entry["action"] == "update"
    assert "progress" in update_entry["changed_fields"]
    assert "title" not in update_entry["changed_fields"]
    assert update_entry["before"]["progress"] == 40
    assert update_entry["after"]["status"] == "completed"


def test_get_missing_task_returns_envelope(client: TestClient) -> None:
    response = client.get(f"/api/tasks/{uuid.uuid4()}")

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "task_get_failed"
    assert body["message"] == "task not found"
    assert body["correlation_id"] == "corr-test"


def test_delete_task(client: TestClient) -> None:
    task = _create_task(client, "Remove me")

    assert client.delete(f"/api/tasks/{task['id']}").status_code == 204
    assert client.get(f"/api/tasks/{task['id']}").status_code == 404


def test_list_tasks_search_sort_and_page(client: TestClient) -> None:
    for index in range(12):
        _create_task(client, f"Task {index:02d}", description="weekly" if index % 4 == 0 else "")

    first = client.get("/api/tasks", params={"sort_by": "title"})
    assert first.status_code == 200
    body = first.json()
    assert body["total"] == 12
    assert body["total_pages"] == 2
    assert body["page_size"] == 10
    assert [item["title"] for item in body["items"]][:2] == ["Task 00", "Task 01"]

    second = client.get("/api/tasks", params={"sort_by": "title", "page": 5})
    assert second.json()["page"] == 2
    assert len(second.json()["items"]) == 2

    searched = client.get("/api/tasks", params={"search": "WEEKLY", "sort_by": "title", "sort_order": "desc"})
    assert [item["title"] for item in searched.json()["items"]] == ["Task 08", "Task 04", "Task 00"]


def test_list_tasks_sorts_priority_by_rank(client: TestClient) -> None:
    _create_task(client, "A", priority="critical")
    _create_task(client, "B", priority="low")
    _create_task(client, "C", priority="high")

    response = client.get("/api/tasks", params={"sort_by": "priority"})

    assert [item["priority"] for item in response.json()["items"]] == ["low", "high", "critical"]


def test_list_tasks_filters_by_status(client: TestClient) -> None:
    _create_task(client, "Open")
    _create_task(client, "Done", status="completed")

    response = client.get("/api/tasks", params={"status": "completed"})

    assert [item["title"] for item in response.json()["items"]] == ["Done"]


def test_list_tasks_unknown_sort_key(client: TestClient) -> None:
    response = client.get("/api/tasks", params={"sort_by": "colour"})

    assert response.status_code == 422
    assert response.json()["code"] == "UNKNOWN_SORT_KEY"


def test_bulk_update_status(client: TestClient) -> None:
    ids = [_create_task(client, f"Task {index}")["id"] for index in range(3)]

    response = client.post(
        "/api/tasks/bulk",
        json={"action": "update_status", "ids": ids, "params": {"status": "blocked"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success_count"] == 3
    assert body["failure_count"] == 0
    assert body["message"] == "Updated 3 tasks"
    assert body["failure_message"] is None
    listed = client.get("/api/tasks", params={"status": "blocked"}).json()
    assert listed["total"] == 3


def test_bulk_delete_with_partial_failure(client: TestClient) -> None:
    ids = [_create_task(client, f"Task {index}")["id"] for index in range(4)]
    bad_id = "not-a-uuid"

    response = client.post(
        "/api/tasks/bulk",
        json={"action": "delete", "ids": [ids[0], ids[1], bad_id, ids[2], ids[3]], "confirm": True},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success_count"] == 4
    assert body["failure_count"] == 1
    assert body["failed_ids"] == [bad_id]
    assert body["errors"] == [f"Task {bad_id}: invalid id"]
    assert body["message"] == "Deleted 4 tasks"
    assert body["failure_message"] == "Failed: 1"
    assert client.get("/api/tasks").json()["total"] == 0

    completed = [event for event in events.published_events if event["event_type"] == "ops.bulk_action.completed"]
    assert len(completed) == 1
    assert completed[0]["payload"]["failed_ids"] == [bad_id]


def test_bulk_delete_requires_confirmation(client: TestClient) -> None:
    ids = [_create_task(client, "Keep me")["id"]]

    response = client.post("/api/tasks/bulk", json={"action": "delete", "ids": ids})

    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "CONFIRMATION_REQUIRED"
    assert body["details"] == {"action": "delete", "count": 1}
    assert client.get("/api/tasks").json()["total"] == 1


@pytest.mark.parametrize("permissions", [{"ops.tasks.read", "ops.tasks.write"}])
def test_bulk_delete_requires_delete_permission(client: TestClient, permissions: set[str]) -> None:
    ids = [_create_task(client, "Protected")["id"]]

    response = client.post("/api/tasks/bulk", json={"action": "delete", "ids": ids, "confirm": True})

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
    assert client.get("/api/tasks").json()["total"] == 1


def test_bulk_unknown_action(client: TestClient) -> None:
    ids = [_create_task(client, "Task")["id"]]

    response = client.post("/api/tasks/bulk", json={"action": "archive", "ids": ids})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "UNKNOWN_BULK_ACTION"
    assert body["message"] == "Unknown action 'archive' for task"
    assert not any(event["event_type"] == "ops.bulk_action.completed" for event in events.published_events)


def test_bulk_missing_params_touches_nothing(client: TestClient) -> None:
    task = _create_task(client, "Task")

    response = client.post("/api/tasks/bulk", json={"action": "reassign", "ids": [task["id"]], "params": {}})

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_BULK_PARAMS"
    assert client.get(f"/api/tasks/{task['id']}").json()["assigned_to"] == []


def test_bulk_reassign_accepts_single_assignee(client: TestClient) -> None:
    task = _create_task(client, "Task", assigned_to=["u-1"])

    response = client.post(
        "/api/tasks/bulk",
        json={"action": "reassign", "ids": [task["id"]], "params": {"assigned_to": "u-9"}},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Reassigned 1 task"
    assert client.get(f"/api/tasks/{task['id']}").json()["assigned_to"] == ["u-9"]


def test_bulk_invalid_value_fails_per_item(client: TestClient) -> None:
    task = _create_task(client, "Task")

    response = client.post(
        "/api/tasks/bulk",
        json={"action": "update_priority", "ids": [task["id"]], "params": {"priority": "urgent"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["failure_count"] == 1
    assert body["errors"][0].startswith(f"Task {task['id']}: priority")


def test_bulk_empty_ids_rejected_by_schema(client: TestClient) -> None:
    response = client.post("/api/tasks/bulk", json={"action": "update_status", "ids": [], "params": {"status": "blocked"}})
    assert response.status_code == 422


def test_bulk_over_limit(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BULK_MAX_IDS", "2")
    get_settings.cache_clear()

    response = client.post(
        "/api/tasks/bulk",
        json={"action": "update_status", "ids": ["a", "b", "c"], "params": {"status": "blocked"}},
    )

    assert response.status_code == 422
    assert response.json()["code"] == "TOO_MANY_IDS"


def test_bulk_rejected_while_another_is_running(client: TestClient) -> None:
    task = _create_task(client, "Task")

    with bulk_action_guard.hold("user-1", "task"):
        response = client.post(
            "/api/tasks/bulk",
            json={"action": "update_status", "ids": [task["id"]], "params": {"status": "blocked"}},
        )

    assert response.status_code == 409
    assert response.json()["code"] == "BULK_ACTION_IN_PROGRESS"
    assert client.get(f"/api/tasks/{task['id']}").json()["status"] == "assigned"
