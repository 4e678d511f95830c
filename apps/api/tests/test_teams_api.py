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
from opsdesk.core.events import InternalEvent, event_bus
from opsdesk.main import app


@pytest.fixture()
def permissions() -> set[str]:
    return {"ops.teams.read", "ops.teams.write", "ops.teams.delete"}


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


def _create_team(client: TestClient, name: str, **overrides: Any) -> dict[str, Any]:
    response = client.post("/api/teams", json={"name": name, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


def test_create_team(client: TestClient) -> None:
    body = _create_team(client, "Platform", member_ids=["u-1", "u-2"], manager_id="u-1")

    assert body["status"] == "active"
    assert body["member_count"] == 2
    assert any(event["event_type"] == "ops.team.created" for event in events.published_events)


def test_create_team_duplicate_name(client: TestClient) -> None:
    _create_team(client, "Platform")

    response = client.post("/api/teams", json={"name": "Platform"})

    assert response.status_code == 409
    assert response.json()["message"] == "team name already exists"


def test_team_cannot_be_its_own_parent(client: TestClient) -> None:
    team = _create_team(client, "Platform")

    response = client.patch(f"/api/teams/{team['id']}", json={"parent_id": team["id"]})

    assert response.status_code == 422
    assert response.json()["message"] == "team cannot be its own parent"


def test_list_teams_pages_by_six_and_sorts_by_members(client: TestClient) -> None:
    for index in range(7):
        _create_team(client, f"Team {index}", member_ids=[f"u-{member}" for member in range(index)])

    response = client.get("/api/teams", params={"sort_by": "members", "sort_order": "desc"})

    body = response.json()
    assert body["page_size"] == 6
    assert body["total_pages"] == 2
    assert [item["member_count"] for item in body["items"]] == [6, 5, 4, 3, 2, 1]


def test_bulk_deactivate_and_activate(client: TestClient) -> None:
    ids = [_create_team(client, f"Team {index}")["id"] for index in range(3)]

    response = client.post("/api/teams/bulk", json={"action": "deactivate", "ids": ids})
    assert response.json()["message"] == "Deactivated 3 teams"
    assert client.get("/api/teams", params={"status": "active"}).json()["total"] == 0

    response = client.post("/api/teams/bulk", json={"action": "activate", "ids": ids[:1]})
    assert response.json()["message"] == "Activated 1 team"
    assert client.get("/api/teams", params={"status": "active"}).json()["total"] == 1


def test_bulk_delete_teams_reports_missing(client: TestClient) -> None:
    team = _create_team(client, "Platform")
    missing = str(uuid.uuid4())

    response = client.post(
        "/api/teams/bulk",
        json={"action": "delete", "ids": [team["id"], missing], "confirm": True},
    )

    body = response.json()
    assert body["success_count"] == 1
    assert body["errors"] == [f"Team {missing}: team not found"]
    assert body["failure_message"] == "Failed: 1"


def test_bulk_delete_teams_requires_confirmation(client: TestClient) -> None:
    team = _create_team(client, "Platform")

    response = client.post("/api/teams/bulk", json={"action": "delete", "ids": [team["id"]]})

    assert response.status_code == 422
    assert response.json()["message"] == "delete of 1 team requires confirm=true"


def test_failing_subscriber_does_not_undo_the_commit(client: TestClient) -> None:
    def broken(event: InternalEvent) -> None:
        raise RuntimeError("subscriber down")

    event_bus.subscribe("ops.team.created", broken)
    try:
        created = _create_team(client, "Support")
    finally:
        event_bus.unsubscribe("ops.team.created", broken)

    fetched = client.get(f"/api/teams/{created['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["name"] == "Support"
    assert any(event["event_type"] == "ops.team.created" for event in events.published_events)
