from datetime import timedelta

import pytest

from conftest import bearer


def test_gate_passes_valid_token(client, user):
    resp = client.get("/user", headers=bearer(user["accessToken"]))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["_id"] == user["_id"]


@pytest.mark.parametrize("header", [None, "", "Token abc", "bearer abc", "Bearer ", "Bearer"])
def test_gate_missing_or_malformed_header(client, header):
    headers = {"Authorization": header} if header is not None else {}
    resp = client.get("/user", headers=headers)
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "missing_token"


def test_gate_invalid_token(client):
    resp = client.get("/user", headers=bearer("abc.def.ghi"))
    assert resp.status_code == 401
    assert resp.get_json()["message"] == "Invalid or expired token"


def test_gate_expired_token(client, user, sessions):
    expired = sessions.codec.sign(user["_id"], timedelta(seconds=-1))
    resp = client.get("/user", headers=bearer(expired))
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "invalid_token"


def test_gate_unconfigured_secret_is_401(client, user, sessions):
    sessions.codec.settings.secret = None
    resp = client.get("/user", headers=bearer(user["accessToken"]))
    assert resp.status_code == 401


def test_gate_unknown_user(client, sessions):
    resp = client.get("/user", headers=bearer(sessions.codec.sign_access("ghost")))
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "user_not_found"


def test_gate_registered_but_never_logged_in(client, register, sessions):
    uid = register()["_id"]
    resp = client.get("/user", headers=bearer(sessions.codec.sign_access(uid)))
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "logged_out"


def test_gate_does_not_touch_session_state(client, user, sessions):
    before = sessions.store.find_by_id(user["_id"]).session_version
    client.get("/user", headers=bearer(user["accessToken"]))
    after = sessions.store.find_by_id(user["_id"])
    assert sessions.store.refresh(after).session_version == before
