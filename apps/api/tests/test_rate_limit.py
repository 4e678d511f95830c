from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from opsdesk.context import resolve_route_group
from opsdesk.core.auth import ActorUser, get_current_actor
from opsdesk.core.config import get_settings
from opsdesk.core.database import Base, get_db
from opsdesk.main import app
from opsdesk.middleware.rate_limit import reset_rate_limiter

ALL_PERMISSIONS = {"ops.tasks.read", "ops.tasks.write"}


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


@pytest.fixture(autouse=True)
def configure_rate_limiter_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_MUTATIONS_PER_MINUTE", "3")
    get_settings.cache_clear()
    reset_rate_limiter()
    yield
    reset_rate_limiter()
    get_settings.cache_clear()


@pytest.fixture()
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    def override_get_current_actor(request: Request) -> ActorUser:
        return ActorUser(
            user_id="user-1",
            permissions=ALL_PERMISSIONS,
            correlation_id=getattr(request.state, "correlation_id", None),
        )

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_actor] = override_get_current_actor
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _task_payload(index: int) -> dict[str, str]:
    return {"title": f"Rate Limit Task {index}", "due_date": "2026-11-01T09:00:00Z"}


def test_mutating_endpoints_are_rate_limited(client: TestClient) -> None:
    responses = [client.post("/api/tasks", json=_task_payload(index)) for index in range(5)]

    assert [response.status_code for response in responses[:3]] == [201, 201, 201]
    limited = [response for response in responses if response.status_code == 429]
    assert limited

    first_limited = limited[0]
    body = first_limited.json()
    assert body["code"] == "RATE_LIMITED"
    assert body["message"] == "Too many requests"
    assert body["correlation_id"] is not None
    assert first_limited.headers.get("Retry-After") is not None


def test_bulk_endpoint_has_its_own_bucket(client: TestClient) -> None:
    for index in range(3):
        assert client.post("/api/tasks", json=_task_payload(index)).status_code == 201

    response = client.post(
        "/api/tasks/bulk",
        json={"action": "update_status", "ids": ["missing"], "params": {"status": "blocked"}},
    )

    assert response.status_code == 200
    assert response.json()["failure_count"] == 1


def test_get_endpoints_are_not_rate_limited(client: TestClient) -> None:
    assert client.post("/api/tasks", json=_task_payload(0)).status_code == 201

    responses = [client.get("/api/tasks") for _ in range(10)]
    assert all(response.status_code != 429 for response in responses)


def test_resolve_route_group() -> None:
    assert resolve_route_group("/api/tasks") == "tasks"
    assert resolve_route_group("/api/tasks/bulk") == "tasks.bulk"
    assert resolve_route_group("/api/tasks/import") == "tasks.import"
    assert resolve_route_group("/api/kras/templates/bulk") == "kras.bulk"
    assert resolve_route_group("/api") == "api"
    assert resolve_route_group("/health") == "api"


def test_batch_endpoints_use_the_batch_limit(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_BATCH_PER_MINUTE", "1")
    get_settings.cache_clear()
    payload = {"action": "update_status", "ids": ["missing"], "params": {"status": "blocked"}}

    first = client.post("/api/tasks/bulk", json=payload)
    second = client.post("/api/tasks/bulk", json=payload)

    assert first.status_code == 200
    assert second.status_code == 429
    assert second.json()["details"] == {"route_group": "tasks.bulk"}
    assert client.post("/api/tasks", json=_task_payload(0)).status_code == 201
