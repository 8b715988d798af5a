import pytest
from fastapi.testclient import TestClient

from scoutserver.endpoints import auth
from scoutserver.main import create_app

from .conftest import ADMIN


@pytest.fixture
def google_client(settings, scouting_config, monkeypatch):
    def fake_verify(token, client_id):
        assert client_id == "test-client-id"
        if token != "good-token":
            raise ValueError("Token has wrong audience")
        return {"email": "Admin@Example.com", "name": "Team Lead"}

    monkeypatch.setattr(auth, "verify_google_credential", fake_verify)
    configured = settings.model_copy(update={"google_client_id": "test-client-id"})
    with TestClient(create_app(configured, scouting_config)) as c:
        yield c


def test_login_issues_session_with_live_role(google_client):
    resp = google_client.post("/auth/login", json={"credential": "good-token"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["email"] == ADMIN
    assert body["name"] == "Team Lead"
    assert body["role"] == "admin"
    assert body["canManageUsers"] is True

    headers = {"x-uuid": body["uuid"]}
    me = google_client.get("/api/me", headers=headers).json()
    assert me["authenticated"] is True
    assert me["user"] == {"email": ADMIN, "name": "Team Lead"}
    assert google_client.get("/api/users", headers=headers).status_code == 200


def test_login_rejects_bad_tokens(google_client):
    assert google_client.post("/auth/login", json={}).status_code == 400
    bad = google_client.post("/auth/login", json={"credential": "forged"})
    assert bad.status_code == 401
    assert bad.json()["error"].startswith("Invalid Google token")


def test_login_unavailable_without_client_id(client):
    resp = client.post("/auth/login", json={"credential": "good-token"})
    assert resp.status_code == 503


def test_logout_ends_session(google_client):
    session_id = google_client.post("/auth/login", json={"credential": "good-token"}).json()["uuid"]
    headers = {"x-uuid": session_id}

    assert google_client.post("/api/logout", headers=headers).json() == {"success": True}
    assert google_client.get("/api/me", headers=headers).json()["authenticated"] is False
    assert google_client.get("/api/users", headers=headers).status_code == 401
