"""Integration tests for the session endpoints (login, rotation, logout)."""

from __future__ import annotations

from authcore.infra.crypto.opaque_tokens import OpaqueTokenFactory
from authcore.infra.workers.hashing_pool import PoolSaturatedError
from authcore.models.refresh_token import RefreshToken
from authcore.services._shared.errors import LOGIN_FAILED, REFRESH_FAILED

from tests.factories.user import UnverifiedUserFactory, UserFactory
from tests.helpers.auth import expired_token, issue_token, login
from tests.helpers.http import API, AUTH, assert_problem, bearer
from tests.helpers.security import DEFAULT_PASSWORD


def _refresh(client, token: str):
    return client.post(f"{AUTH}/refresh-token", json={"refresh_token": token})


# ------------------------------- Login ------------------------------------ #
def test_login_returns_token_pair(client):
    email = UserFactory().email

    resp = client.post(f"{AUTH}/login", json={"email": email, "password": DEFAULT_PASSWORD})

    assert resp.status_code == 200
    assert resp.headers["Cache-Control"] == "no-store"
    data = resp.get_json()["data"]
    assert set(data) == {"access_token", "refresh_token", "token_type", "expires_in"}
    assert data["token_type"] == "Bearer"
    assert data["expires_in"] == 15 * 60


def test_login_failures_are_indistinguishable(client):
    known = UserFactory().email
    unverified = UnverifiedUserFactory().email

    bodies = [
        client.post(f"{AUTH}/login", json={"email": known, "password": "Wrong-pass-1"}),
        client.post(f"{AUTH}/login", json={"email": "ghost@example.com", "password": "x"}),
        client.post(f"{AUTH}/login", json={"email": unverified, "password": DEFAULT_PASSWORD}),
    ]

    problems = [assert_problem(resp, 401, "unauthorized") for resp in bodies]
    assert {p["detail"] for p in problems} == {LOGIN_FAILED}


def test_login_validation_error(client):
    resp = client.post(f"{AUTH}/login", json={"email": "not-an-email"})

    body = assert_problem(resp, 422, "validation_error")
    assert set(body["details"]["errors"]) == {"email", "password"}


def test_login_records_session_metadata(client, session):
    user = UserFactory()
    email, user_id = user.email, user.id

    login(
        client,
        email,
        headers={"User-Agent": "pytest-browser/1.0", "X-Forwarded-For": "198.51.100.9"},
    )

    record = session.query(RefreshToken).filter_by(user_id=user_id).one()
    assert record.user_agent == "pytest-browser/1.0"
    assert record.ip_address == "198.51.100.9"


def test_busy_hashing_pool_returns_503(client, registry, monkeypatch):
    email = UserFactory().email

    def saturated(fn, *args):
        raise PoolSaturatedError("Hashing capacity exhausted.")

    monkeypatch.setattr(registry.hashing_pool, "run", saturated)

    resp = client.post(f"{AUTH}/login", json={"email": email, "password": DEFAULT_PASSWORD})
    assert_problem(resp, 503, "service_unavailable")


# ------------------------------ Rotation ---------------------------------- #
def test_refresh_rotates_and_detects_reuse(client, session):
    email = UserFactory().email
    first = login(client, email)

    resp = _refresh(client, first["refresh_token"])
    assert resp.status_code == 200
    second = resp.get_json()["data"]
    assert second["refresh_token"] != first["refresh_token"]

    # replaying the consumed token kills the family
    replay = assert_problem(_refresh(client, first["refresh_token"]), 401, "unauthorized")
    assert replay["detail"] == REFRESH_FAILED
    rejected = assert_problem(_refresh(client, second["refresh_token"]), 401)
    assert rejected["detail"] == REFRESH_FAILED

    record = session.query(RefreshToken).filter_by(
        lookup_hash=OpaqueTokenFactory.lookup_hash(second["refresh_token"])
    ).one()
    assert record.invalidated is True


def test_refresh_with_unknown_token(client):
    body = assert_problem(_refresh(client, "bogus-refresh-token"), 401)
    assert body["detail"] == REFRESH_FAILED


def test_refresh_requires_token(client):
    assert_problem(client.post(f"{AUTH}/refresh-token", json={}), 422, "validation_error")


# ------------------------------- Logout ----------------------------------- #
def test_logout_forgets_refresh_token(client):
    email = UserFactory().email
    pair = login(client, email)

    resp = client.post(f"{AUTH}/logout", json={"refresh_token": pair["refresh_token"]})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["success"] is True

    assert_problem(_refresh(client, pair["refresh_token"]), 401)
    # logging out twice is still fine
    again = client.post(f"{AUTH}/logout", json={"refresh_token": pair["refresh_token"]})
    assert again.status_code == 200


def test_logout_all_revokes_every_session(client, session):
    user = UserFactory()
    email, user_id = user.email, user.id
    one = login(client, email)
    login(client, email)

    resp = client.post(f"{AUTH}/logout-all", headers=bearer(one["access_token"]))

    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"success": True, "revoked": 2}
    assert session.query(RefreshToken).filter_by(user_id=user_id).count() == 0
    assert_problem(_refresh(client, one["refresh_token"]), 401)


def test_logout_all_requires_bearer(client):
    assert_problem(client.post(f"{AUTH}/logout-all"), 401, "missing_token")


# -------------------------------- Me -------------------------------------- #
def test_me_returns_profile(client):
    user = UserFactory(username="switch")
    email, user_id = user.email, user.id
    pair = login(client, email)

    resp = client.get(f"{AUTH}/me", headers=bearer(pair["access_token"]))

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["id"] == user_id
    assert data["username"] == "switch"
    assert data["is_email_verified"] is True
    assert "password_hash" not in data


def test_me_rejects_missing_invalid_and_expired_tokens(client, app):
    user_id = UserFactory().id
    with app.app_context():
        stale = expired_token(user_id)

    assert_problem(client.get(f"{AUTH}/me"), 401, "missing_token")
    assert_problem(client.get(f"{AUTH}/me", headers=bearer("garbage")), 401, "invalid_token")
    assert_problem(client.get(f"{AUTH}/me", headers=bearer(stale)), 401, "token_expired")


def test_me_for_deleted_user_is_404(client, app):
    with app.app_context():
        token = issue_token(424242)

    assert_problem(client.get(f"{AUTH}/me", headers=bearer(token)), 404, "not_found")


# ------------------------------ Plumbing ---------------------------------- #
def test_health(client):
    resp = client.get(f"{API}/health")

    assert resp.status_code == 200
    assert resp.get_json()["db"] == "ok"


def test_unknown_route_is_problem_json(client):
    body = assert_problem(client.get(f"{API}/does-not-exist"), 404, "not_found")
    assert "does-not-exist" in body["detail"]


def test_request_id_is_echoed(client):
    resp = client.get(f"{API}/health", headers={"X-Request-ID": "trace-42"})
    assert resp.headers["X-Request-ID"] == "trace-42"
