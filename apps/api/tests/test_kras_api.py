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
from opsdesk.bulk import reset_bulk_action_guard
from opsdesk.core.auth import ActorUser, get_current_actor
from opsdesk.core.config import get_settings
from opsdesk.core.database import Base, get_db
from opsdesk.main import app


@pytest.fixture()
def permissions() -> set[str]:
    return {"ops.kras.read", "ops.kras.write", "ops.kras.delete"}


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
def client(db_session: Session, permissions: set[str]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_actor() -> ActorUser:
        return ActorUser(user_id="admin-1", permissions=permissions, correlation_id="corr-test")

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = override_get_current_actor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_template(client: TestClient, title: str, **overrides: Any) -> dict[str, Any]:
    response = client.post("/api/kras/templates", json={"title": title, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_template(client: TestClient) -> None:
    body = _create_template(client, "Weekly sales review", target="10 calls", kra_type="weekly")

    assert body["status"] == "active"
    assert body["created_by"] == "admin-1"
    assert body["last_generated"] is None


def test_missing_template_returns_envelope(client: TestClient) -> None:
    response = client.get(f"/api/kras/templates/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json()["message"] == "Template not found"


def test_duplicate_template_endpoint(client: TestClient) -> None:
    template = _create_template(client, "Daily standup", kra_type="daily", priority="high")

    response = client.post(f"/api/kras/templates/{template['id']}/duplicate")

    assert response.status_code == 201
    copy = response.json()
    assert copy["id"] != template["id"]
    assert copy["title"] == "Daily standup (Copy)"
    assert copy["is_active"] is False
    assert copy["priority"] == "high"
    assert copy["kra_type"] == "daily"


def test_bulk_duplicate_templates(client: TestClient) -> None:
    ids = [_create_template(client, f"Template {index}")["id"] for index in range(2)]

    response = client.post("/api/kras/templates/bulk", json={"action": "duplicate", "ids": ids})

    assert response.json()["message"] == "Duplicated 2 templates"
    listed = client.get("/api/kras/templates", params={"sort_by": "title"}).json()
    assert [item["title"] for item in listed["items"]] == [
        "Template 0",
        "Template 0 (Copy)",
        "Template 1",
        "Template 1 (Copy)",
    ]
    assert client.get("/api/kras/templates", params={"status": "inactive"}).json()["total"] == 2


def test_bulk_toggle_status_flips_each_template(client: TestClient) -> None:
    active = _create_template(client, "Active one")
    inactive = _create_template(client, "Inactive one", is_active=False)

    response = client.post(
        "/api/kras/templates/bulk",
        json={"action": "toggle_status", "ids": [active["id"], inactive["id"]]},
    )

    assert response.json()["message"] == "Updated 2 templates"
    assert client.get(f"/api/kras/templates/{active['id']}").json()["is_active"] is False
    assert client.get(f"/api/kras/templates/{inactive['id']}").json()["is_active"] is True


def test_list_templates_search_and_priority_sort(client: TestClient) -> None:
    _create_template(client, "Calls", target="50 calls", priority="critical")
    _create_template(client, "Emails", target="20 emails", priority="low")
    _create_template(client, "Demos", description="Book calls first", priority="medium")

    response = client.get(
        "/api/kras/templates",
        params={"search": "calls", "sort_by": "priority", "sort_order": "desc"},
    )

    assert [item["title"] for item in response.json()["items"]] == ["Calls", "Demos"]


def test_bulk_delete_templates(client: TestClient) -> None:
    ids = [_create_template(client, f"Template {index}")["id"] for index in range(3)]

    response = client.post("/api/kras/templates/bulk", json={"action": "delete", "ids": ids, "confirm": True})

    assert response.json()["message"] == "Deleted 3 templates"
    assert client.get("/api/kras/templates").json()["total"] == 0
    deleted = [entry for entry in audit.audit_entries if entry["action"] == "delete"]
    assert len(deleted) == 3
