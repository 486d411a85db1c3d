"""HTTP and websocket tests; most use a client with authentication stubbed out."""

import jwt
import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from inflio.auth import ClerkUser, get_current_user
from inflio.main import app
from inflio.services.encryption_service import encryption_service

from tests.factories import TEST_USER

pytestmark = pytest.mark.api

API = "/api/v1"


@pytest.fixture
def client(db):
    app.dependency_overrides[get_current_user] = lambda: ClerkUser(user_id=TEST_USER)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_project(client, **extra):
    body = {"title": "Building in public", "tags": ["startup", "build in public"]}
    body.update(extra)
    response = client.post(f"{API}/projects", json=body)
    assert response.status_code == 201
    return response.json()


def test_health(client):
    response = client.get(f"{API}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["scheduler"] == "stopped"
    assert response.json()["platforms_configured"] == []


def test_request_id_is_echoed(client):
    response = client.get(f"{API}/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"
    assert client.get(f"{API}/health").headers["X-Request-ID"]


def test_requests_without_token_are_rejected(db):
    response = TestClient(app).get(f"{API}/projects")
    assert response.status_code == 401


def _bearer(claims):
    token = jwt.encode(claims, "development-signing-key-0123456789abcdef", algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


def test_development_tokens_are_read_without_issuer(db):
    client = TestClient(app)

    ok = client.get(f"{API}/projects", headers=_bearer({"sub": TEST_USER}))
    assert ok.status_code == 200
    assert ok.json()["total"] == 0

    no_subject = client.get(f"{API}/projects", headers=_bearer({"email": "a@b.co"}))
    assert no_subject.status_code == 401

    garbage = client.get(f"{API}/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401


def test_project_crud(client):
    project = _create_project(client, content_analysis={"sentiment": "positive"})
    assert project["status"] == "draft"
    assert project["tags"] == ["startup", "build in public"]

    listing = client.get(f"{API}/projects").json()
    assert listing["total"] == 1
    assert listing["items"][0]["id"] == project["id"]

    assert client.delete(f"{API}/projects/{project['id']}").status_code == 204
    missing = client.get(f"{API}/projects/{project['id']}")
    assert missing.status_code == 404
    assert missing.json()["code"] == "NOT_FOUND"


def test_processing_needs_video(client):
    project = _create_project(client)
    response = client.post(f"{API}/projects/{project['id']}/process")
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_generate_approve_and_stage_flow(client):
    project = _create_project(client)

    generated = client.post(
        f"{API}/posts/generate",
        json={
            "project_id": project["id"],
            "content_types": ["quote"],
            "platforms": ["instagram", "linkedin"],
        },
    )
    assert generated.status_code == 200
    suggestion = generated.json()["suggestions"][0]
    assert suggestion["status"] == "ready"

    job = client.get(f"{API}/posts/jobs/{generated.json()['job_id']}").json()
    assert job["status"] == "completed"
    assert job["output_data"]["suggestion_ids"] == [suggestion["id"]]

    approved = client.post(f"{API}/posts/{suggestion['id']}/approve")
    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert client.post(f"{API}/posts/{suggestion['id']}/approve").status_code == 409

    staging = client.get(f"{API}/projects/{project['id']}/staging-session").json()
    assert staging["data"]["ids"] == [suggestion["id"]]

    staged = client.post(f"{API}/posts/stage", json={"suggestion_ids": [suggestion["id"]]})
    assert staged.json() == {"success": 1, "failed": 0, "errors": []}

    listed = client.get(f"{API}/projects/{project['id']}/posts", params={"status": "staged"})
    assert [s["id"] for s in listed.json()] == [suggestion["id"]]


def test_platform_listing_and_unconfigured_auth_url(client):
    platforms = client.get(f"{API}/social/platforms").json()
    assert len(platforms) == 7
    assert {"Instagram", "LinkedIn", "X (Twitter)"} <= {p["name"] for p in platforms}
    assert not any(p["configured"] for p in platforms)

    response = client.get(f"{API}/social/auth-url/linkedin")
    assert response.status_code == 400
    assert response.json()["code"] == "PLATFORM_NOT_CONFIGURED"

    assert client.get(f"{API}/social/auth-url/myspace").status_code == 400


def test_oauth_callback_redirects_with_errors(client):
    denied = client.get(
        f"{API}/social/callback/linkedin", params={"error": "access_denied"}, follow_redirects=False
    )
    assert denied.status_code == 307
    assert denied.headers["location"].endswith("/social?error=access_denied")

    missing = client.get(f"{API}/social/callback/linkedin", follow_redirects=False)
    assert missing.headers["location"].endswith("error=missing_code")

    wrong_platform = encryption_service.create_state({"user_id": TEST_USER, "platform": "x"})
    invalid = client.get(
        f"{API}/social/callback/linkedin",
        params={"code": "abc", "state": wrong_platform},
        follow_redirects=False,
    )
    assert invalid.headers["location"].endswith("error=invalid_state")


def test_persona_training_status_lookup(client):
    created = client.post(f"{API}/personas", json={"name": "Dana"})
    assert created.status_code == 201
    persona = created.json()

    assert client.get(f"{API}/personas/{persona['id']}").json()["name"] == "Dana"
    missing = client.get(f"{API}/personas/train-lora", params={"persona_id": persona["id"]})
    assert missing.status_code == 404


def test_progress_socket_sends_snapshot_then_answers_ping(client):
    project = _create_project(client)

    with client.websocket_connect(f"/ws/projects/{project['id']}") as socket:
        snapshot = socket.receive_json()
        assert snapshot["type"] == "task_snapshot"
        assert snapshot["project_status"] == "draft"
        assert snapshot["tasks"] == []

        socket.send_text("ping")
        assert socket.receive_text() == "pong"


def test_progress_socket_rejects_unknown_project(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws/projects/not-a-project") as socket:
            socket.receive_json()
    assert exc_info.value.code == 4404
