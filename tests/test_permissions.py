import pytest

from scoutserver.enums import Capability, Role
from scoutserver.permissions import capabilities_for

from .conftest import UPLOADER


def test_capabilities_are_total():
    assert capabilities_for(Role.ADMIN) == set(Capability)
    assert capabilities_for(Role.UPLOAD) == {Capability.VIEW, Capability.UPLOAD}
    assert capabilities_for(None) == {Capability.VIEW}


def test_anonymous_can_read_but_not_write(client):
    assert client.get("/api/data/prematch").status_code == 200

    resp = client.post("/api/submit/prematch", json={"teamNumber": "254"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Sign in with Google to continue."

    assert client.put("/api/data/prematch/1", json={}).status_code == 401
    assert client.delete("/api/data/prematch/1").status_code == 401
    assert client.get("/api/users").status_code == 401


def test_signed_in_without_role_is_forbidden(client, no_role_headers):
    resp = client.post("/api/submit/prematch", json={"teamNumber": "254"}, headers=no_role_headers)
    assert resp.status_code == 403
    assert "permission" in resp.json()["error"]
    assert client.get("/api/data/prematch", headers=no_role_headers).status_code == 200


def test_upload_role_can_submit_but_not_edit(client, upload_headers):
    resp = client.post("/api/submit/prematch", json={"teamNumber": "254"}, headers=upload_headers)
    assert resp.status_code == 201
    entry_id = resp.json()["id"]

    put = client.put(f"/api/data/prematch/{entry_id}", json={"teamNumber": "1"}, headers=upload_headers)
    assert put.status_code == 403
    assert put.json() == {"error": "Admin access required."}
    assert client.delete(f"/api/data/prematch/{entry_id}", headers=upload_headers).status_code == 403
    assert client.get("/api/users", headers=upload_headers).status_code == 403


def test_admin_can_do_everything(client, admin_headers):
    resp = client.post("/api/submit/prematch", json={"teamNumber": "254"}, headers=admin_headers)
    entry_id = resp.json()["id"]
    assert client.put(f"/api/data/prematch/{entry_id}", json={"teamNumber": "1"},
                      headers=admin_headers).status_code == 200
    assert client.delete(f"/api/data/prematch/{entry_id}", headers=admin_headers).status_code == 200
    assert client.get("/api/users", headers=admin_headers).status_code == 200


def test_role_change_applies_on_next_request(client, admin_headers, upload_headers):
    url = "/api/data/prematch/1"
    client.post("/api/submit/prematch", json={"teamNumber": "254"}, headers=upload_headers)
    assert client.delete(url, headers=upload_headers).status_code == 403

    promoted = client.put(f"/api/users/{UPLOADER}", json={"role": "admin"}, headers=admin_headers)
    assert promoted.status_code == 200
    assert client.delete(url, headers=upload_headers).status_code == 200

    client.delete(f"/api/users/{UPLOADER}", headers=admin_headers)
    resp = client.post("/api/submit/prematch", json={"teamNumber": "254"}, headers=upload_headers)
    assert resp.status_code == 403


def test_unknown_or_expired_session_is_unauthenticated(client, app):
    from .conftest import sign_in

    expired = sign_in(app.state.store, UPLOADER, "upload", hours=-1)
    for headers in (expired, {"x-uuid": "garbage"}, {"x-uuid": "00000000-0000-0000-0000-000000000000"}):
        resp = client.post("/api/submit/prematch", json={"teamNumber": "254"}, headers=headers)
        assert resp.status_code == 401


@pytest.mark.parametrize("path", ["/api/me", "/api/health"])
def test_open_routes_ignore_bad_sessions(client, path):
    assert client.get(path, headers={"x-uuid": "garbage"}).status_code == 200
