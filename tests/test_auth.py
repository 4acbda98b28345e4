from __future__ import annotations

import json

import pytest

from study_tutor.auth import AuthError, AuthSession


def test_sign_in_persists_profile(tmp_path):
    auth = AuthSession(tmp_path)

    context = auth.sign_in(" alice ")

    assert context.user_id == "alice"
    assert auth.current == context
    payload = json.loads(auth.path.read_text())
    assert payload["user_id"] == "alice"
    assert AuthSession(tmp_path).load() == context


def test_require_without_profile_fails(tmp_path):
    auth = AuthSession(tmp_path)
    assert auth.load() is None
    with pytest.raises(AuthError, match="tutor auth login"):
        auth.require()


@pytest.mark.parametrize("bad", ["", "   ", "-alice", "a b", "x" * 65])
def test_sign_in_rejects_bad_ids(tmp_path, bad):
    with pytest.raises(AuthError):
        AuthSession(tmp_path).sign_in(bad)


def test_sign_out_clears_profile(tmp_path):
    auth = AuthSession(tmp_path)
    auth.sign_in("alice")

    previous = auth.sign_out()

    assert previous.user_id == "alice"
    assert auth.current is None
    assert not auth.path.exists()
    assert auth.sign_out() is None


def test_corrupt_profile_is_reported(tmp_path):
    auth = AuthSession(tmp_path)
    auth.path.write_text("not json")
    with pytest.raises(AuthError, match="unreadable"):
        auth.load()


def test_sign_out_removes_corrupt_profile(tmp_path):
    auth = AuthSession(tmp_path)
    auth.path.write_text("{not json")

    assert auth.sign_out() is None
    assert not auth.path.exists()
    assert auth.load() is None
