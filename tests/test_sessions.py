import json

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from utils.exceptions import (
    ExpiredToken,
    InvalidCredentials,
    InvalidToken,
    LoggedOut,
    SecurityBreach,
    StaleSession,
    StoreError,
    Unconfigured,
    UnknownSubject,
)
from datetime import timedelta


def _tokens_of(sessions, user_id):
    user = sessions.store.find_by_id(user_id)
    return sessions.store.refresh(user).refresh_tokens


def test_issue_pair_round_trips_subject(sessions):
    pair = sessions.issue_pair("subject-1")
    assert sessions.codec.subject_of(pair.access_token) == "subject-1"
    assert sessions.codec.subject_of(pair.refresh_token) == "subject-1"
    assert pair.access_token != pair.refresh_token


def test_login_overwrites_refresh_tokens(sessions, register):
    uid = register()["_id"]
    first = sessions.login("a@x.com", "secret1")
    second = sessions.login("a@x.com", "secret1")
    assert first.user.id == uid
    assert _tokens_of(sessions, uid) == [second.tokens.refresh_token]


def test_login_is_case_insensitive_on_email(sessions, register):
    register()
    assert sessions.login("A@X.com", "secret1").user.email == "a@x.com"


def test_login_rejects_bad_credentials_identically(sessions, register):
    register()
    with pytest.raises(InvalidCredentials) as wrong_password:
        sessions.login("a@x.com", "nope-nope")
    with pytest.raises(InvalidCredentials) as unknown_email:
        sessions.login("ghost@x.com", "secret1")
    assert wrong_password.value.message == unknown_email.value.message


def test_login_without_secret_writes_nothing(sessions, register):
    uid = register()["_id"]
    sessions.codec.settings.secret = None
    with pytest.raises(Unconfigured):
        sessions.login("a@x.com", "secret1")
    sessions.codec.settings.secret = "test-secret"
    assert _tokens_of(sessions, uid) == []


def test_rotation_chain(sessions, register):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    first = sessions.rotate(login.tokens.refresh_token)
    second = sessions.rotate(first.refresh_token)
    assert _tokens_of(sessions, uid) == [second.refresh_token]


def test_rotate_keeps_other_devices(sessions, register):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    user = sessions.store.find_by_id(uid)
    sessions.store.replace_refresh_tokens(user, ["other-device", login.tokens.refresh_token])

    pair = sessions.rotate(login.tokens.refresh_token)
    assert _tokens_of(sessions, uid) == ["other-device", pair.refresh_token]


def test_reuse_revokes_every_session(sessions, register):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    fresh = sessions.rotate(login.tokens.refresh_token)

    with pytest.raises(SecurityBreach):
        sessions.rotate(login.tokens.refresh_token)
    assert _tokens_of(sessions, uid) == []
    with pytest.raises(SecurityBreach):
        sessions.rotate(fresh.refresh_token)


def test_rotate_expired_and_invalid(sessions, register):
    uid = register()["_id"]
    expired = sessions.codec.sign(uid, timedelta(seconds=-5))
    with pytest.raises(ExpiredToken) as exc:
        sessions.rotate(expired)
    assert exc.value.message == "Refresh token expired"
    with pytest.raises(InvalidToken) as exc:
        sessions.rotate("garbage")
    assert exc.value.message == "Invalid refresh token"


def test_rotate_for_missing_user(sessions):
    token = sessions.codec.sign_refresh("no-such-user")
    with pytest.raises(UnknownSubject):
        sessions.rotate(token)


def test_logout_clears_everything_and_gate_refuses(sessions, register):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    assert sessions.authenticate(login.tokens.access_token).user_id == uid

    sessions.logout(login.tokens.access_token)
    assert _tokens_of(sessions, uid) == []
    with pytest.raises(LoggedOut):
        sessions.authenticate(login.tokens.access_token)
    with pytest.raises(SecurityBreach):
        sessions.rotate(login.tokens.refresh_token)


def test_logout_unknown_user(sessions):
    with pytest.raises(UnknownSubject):
        sessions.logout(sessions.codec.sign_access("ghost"))


def test_authenticate_maps_codec_failures(sessions, register):
    uid = register()["_id"]
    sessions.login("a@x.com", "secret1")
    token = sessions.codec.sign_access(uid)
    sessions.codec.settings.secret = None
    with pytest.raises(InvalidToken):
        sessions.authenticate(token)
    sessions.codec.settings.secret = "test-secret"
    assert sessions.authenticate(token).claims["sub"] == uid


def test_store_failure_is_generic(sessions, register, monkeypatch):
    register()

    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("db down"))

    monkeypatch.setattr(sessions.store, "find_by_email", broken)
    with pytest.raises(StoreError) as exc:
        sessions.login("a@x.com", "secret1")
    assert "db down" not in exc.value.message


def test_stale_write_is_detected(sessions, register):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    user = sessions.store.find_by_id(uid)
    # another writer bumps the row version behind this session's back
    sessions.store.session.execute(
        text("UPDATE users SET session_version = session_version + 1 WHERE id = :id"), {"id": uid}
    )
    with pytest.raises(StaleSession):
        sessions.store.consume_refresh_token(user, login.tokens.refresh_token, "minted")


def _race(sessions, monkeypatch, uid, tokens_after_race, finder="find_by_id"):
    """Make the next lookup through ``finder`` lose a race against a committed concurrent write."""
    real_find = getattr(sessions.store, finder)

    def racing_find(*args, **kwargs):
        user = real_find(*args, **kwargs)
        sessions.store.session.execute(
            text("UPDATE users SET refresh_tokens = :t, session_version = session_version + 1 WHERE id = :id"),
            {"t": json.dumps(tokens_after_race), "id": uid},
        )
        sessions.store.session.commit()
        monkeypatch.setattr(sessions.store, finder, real_find)
        return user

    monkeypatch.setattr(sessions.store, finder, racing_find)


def test_concurrent_rotation_of_same_token_is_a_breach(sessions, register, monkeypatch):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    # the competing request already rotated the same token
    _race(sessions, monkeypatch, uid, ["minted-by-the-other-request"])

    with pytest.raises(SecurityBreach):
        sessions.rotate(login.tokens.refresh_token)
    assert _tokens_of(sessions, uid) == []


def test_unrelated_concurrent_write_still_rotates(sessions, register, monkeypatch):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    _race(sessions, monkeypatch, uid, [login.tokens.refresh_token, "second-device"])

    pair = sessions.rotate(login.tokens.refresh_token)
    assert _tokens_of(sessions, uid) == ["second-device", pair.refresh_token]


def test_login_overwrites_despite_concurrent_write(sessions, register, monkeypatch):
    uid = register()["_id"]
    sessions.login("a@x.com", "secret1")
    _race(sessions, monkeypatch, uid, ["rotated-elsewhere"], finder="find_by_email")

    result = sessions.login("a@x.com", "secret1")
    assert _tokens_of(sessions, uid) == [result.tokens.refresh_token]
    assert sessions.authenticate(result.tokens.access_token).user_id == uid


def test_logout_revokes_despite_concurrent_rotation(sessions, register, monkeypatch):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    _race(sessions, monkeypatch, uid, [login.tokens.refresh_token, "rotated-elsewhere"])

    sessions.logout(login.tokens.access_token)
    assert _tokens_of(sessions, uid) == []
    with pytest.raises(LoggedOut):
        sessions.authenticate(login.tokens.access_token)


def test_reuse_revokes_despite_concurrent_write(sessions, register, monkeypatch):
    uid = register()["_id"]
    login = sessions.login("a@x.com", "secret1")
    fresh = sessions.rotate(login.tokens.refresh_token)
    _race(sessions, monkeypatch, uid, [fresh.refresh_token, "other-device"])

    with pytest.raises(SecurityBreach):
        sessions.rotate(login.tokens.refresh_token)
    assert _tokens_of(sessions, uid) == []


def test_second_logout_is_refused(sessions, register):
    register()
    login = sessions.login("a@x.com", "secret1")
    sessions.logout(login.tokens.access_token)
    with pytest.raises(LoggedOut):
        sessions.logout(login.tokens.access_token)
