"""End-to-end tests of the ``/api/auth`` routes through the Flask test client."""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace
from urllib.parse import parse_qs, urlparse

import pytest
import responses
from auth_api.infra import SESSION_STORE_KEY
from auth_api.infra.jwt.flask_jwt_token_provider import JWTTokenProvider
from auth_api.models.session import AuthSession
from auth_api.models.user import User
from auth_api.services._shared.errors import StoreUnavailableError
from auth_api.services._shared.ports import InMemorySessionStore
from auth_api.services.identity import IdentityService
from auth_api.services.identity_provider.google import AUTH_URL, TOKEN_URL, USERINFO_URL
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from tests.factories.user import DEFAULT_PASSWORD, UserFactory

BASE = "/api/auth"


class DownStore(InMemorySessionStore):
    def create(self, **kwargs):
        raise StoreUnavailableError("down")


@pytest.fixture()
def account(session):
    """Committed password account as plain values (ORM rows detach between requests)."""
    row = UserFactory(name="Ada Lovelace")
    session.commit()
    return SimpleNamespace(id=row.id, email=row.email, password=DEFAULT_PASSWORD, name=row.name)


def _set_cookie(resp, name: str) -> str:
    for header in resp.headers.getlist("Set-Cookie"):
        if header.startswith(f"{name}="):
            return header
    raise AssertionError(f"{name} cookie not set; got {resp.headers.getlist('Set-Cookie')}")


def _cookie_value(resp, name: str) -> str:
    return _set_cookie(resp, name).split(";", 1)[0].split("=", 1)[1]


def _login(client, account, **headers):
    return client.post(
        f"{BASE}/login",
        json={"email": account.email, "password": account.password},
        headers=headers,
    )


def _session_count(session) -> int:
    return session.execute(select(func.count()).select_from(AuthSession)).scalar_one()


# ------------------------------ register ---------------------------------- #
def test_register_creates_account_without_logging_in(client, session):
    resp = client.post(
        f"{BASE}/register",
        json={"name": "Grace", "email": "Grace@Example.com", "password": "long-enough"},
    )

    assert resp.status_code == 201
    assert resp.get_json()["user"]["email"] == "grace@example.com"
    assert "password_hash" not in resp.get_json()["user"]
    assert resp.headers.getlist("Set-Cookie") == []
    assert session.execute(select(User).where(User.email == "grace@example.com")).scalar_one()


def test_register_duplicate_email_is_409(client, account):
    resp = client.post(
        f"{BASE}/register",
        json={"name": "Dup", "email": account.email, "password": "long-enough"},
    )
    assert resp.status_code == 409
    assert resp.get_json()["code"] == "conflict"


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"email": "not-an-email", "password": "long-enough"},
        {"email": "short@example.com", "password": "short"},
    ],
)
def test_register_validation_is_400(client, payload):
    resp = client.post(f"{BASE}/register", json=payload)
    assert resp.status_code == 400
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "validation_error"


# -------------------------------- login ----------------------------------- #
def test_login_sets_both_cookies(client, account, session):
    resp = _login(client, account)

    assert resp.status_code == 200
    assert resp.get_json() == {
        "user": {"id": account.id, "email": account.email, "name": account.name}
    }
    access = _set_cookie(resp, "access_token")
    refresh = _set_cookie(resp, "refresh_token")
    assert "Max-Age=900" in access
    assert "Max-Age=2592000" in refresh
    for header in (access, refresh):
        assert "HttpOnly" in header
        assert "SameSite=Lax" in header
        assert "Path=/" in header
        assert "Secure" not in header
    assert _session_count(session) == 1


def test_login_failures_share_one_401_body(client, account, session):
    wrong = client.post(f"{BASE}/login", json={"email": account.email, "password": "nope"})
    unknown = client.post(
        f"{BASE}/login", json={"email": "ghost@example.com", "password": account.password}
    )

    assert wrong.status_code == unknown.status_code == 401
    strip = lambda body: {k: v for k, v in body.items() if k != "request_id"}  # noqa: E731
    assert strip(wrong.get_json()) == strip(unknown.get_json())
    assert wrong.get_json()["code"] == "unauthorized"
    assert wrong.headers.getlist("Set-Cookie") == []
    assert _session_count(session) == 0


def test_login_with_short_password_is_checked_not_rejected(client, session):
    UserFactory(email="short@example.com", password="correct")
    session.commit()

    resp = client.post(f"{BASE}/login", json={"email": "short@example.com", "password": "correct"})
    assert resp.status_code == 200


def test_login_malformed_is_400(client):
    resp = client.post(f"{BASE}/login", json={"email": "x"})
    assert resp.status_code == 400


def test_login_records_client_metadata(client, account, session):
    ua = "A" * 600
    _login(client, account, **{"User-Agent": ua})

    row = session.execute(select(AuthSession)).scalar_one()
    assert row.user_agent == "A" * 512
    assert row.ip == "127.0.0.1"


def test_login_ignores_spoofed_forwarded_for(client, account, session):
    _login(client, account, **{"X-Forwarded-For": "198.51.100.9"})

    row = session.execute(select(AuthSession)).scalar_one()
    assert row.ip == "127.0.0.1"


def test_store_outage_is_503(app, client, account, monkeypatch):
    monkeypatch.setitem(app.extensions, SESSION_STORE_KEY, DownStore())

    resp = _login(client, account)

    assert resp.status_code == 503
    assert resp.get_json()["code"] == "service_unavailable"
    assert resp.headers.getlist("Set-Cookie") == []


# ------------------------------- refresh ---------------------------------- #
def test_refresh_rotates_and_replay_is_401(client, account, session):
    first = _login(client, account)
    old_refresh = _cookie_value(first, "refresh_token")

    rotated = client.post(f"{BASE}/refresh")
    assert rotated.status_code == 200
    assert rotated.get_json()["user"]["id"] == account.id
    new_refresh = _cookie_value(rotated, "refresh_token")
    assert new_refresh != old_refresh
    assert "Max-Age=2592000" in _set_cookie(rotated, "refresh_token")

    client.set_cookie("refresh_token", old_refresh)
    replay = client.post(f"{BASE}/refresh")
    assert replay.status_code == 401

    active = session.execute(
        select(func.count()).select_from(AuthSession).where(AuthSession.revoked_at.is_(None))
    ).scalar_one()
    assert active == 1
    assert _session_count(session) == 2


def test_refresh_without_cookie_is_401(client):
    assert client.post(f"{BASE}/refresh").status_code == 401


def test_refresh_with_access_token_is_401(client, account):
    resp = _login(client, account)
    client.set_cookie("refresh_token", _cookie_value(resp, "access_token"))
    assert client.post(f"{BASE}/refresh").status_code == 401


# -------------------------------- logout ---------------------------------- #
def test_logout_revokes_and_clears_cookies(client, account, session):
    login = _login(client, account)
    refresh = _cookie_value(login, "refresh_token")

    resp = client.post(f"{BASE}/logout")

    assert resp.status_code == 200
    assert resp.get_json() == {"success": True}
    for name in ("access_token", "refresh_token"):
        cleared = _set_cookie(resp, name)
        assert cleared.startswith(f"{name}=;")
        assert "Max-Age=0" in cleared or "1970" in cleared
    row = session.execute(select(AuthSession)).scalar_one()
    assert row.revoked_at is not None

    client.set_cookie("refresh_token", refresh)
    assert client.post(f"{BASE}/refresh").status_code == 401


def test_logout_without_session_still_succeeds(client):
    resp = client.post(f"{BASE}/logout")
    assert resp.status_code == 200
    client.set_cookie("refresh_token", "garbage")
    assert client.post(f"{BASE}/logout").status_code == 200


# ---------------------------------- me ------------------------------------ #
def test_me_requires_access_cookie(client):
    resp = client.get(f"{BASE}/me")
    assert resp.status_code == 401
    assert resp.get_json()["code"] == "unauthorized"


def test_me_returns_current_user(client, account):
    _login(client, account)
    resp = client.get(f"{BASE}/me")
    assert resp.status_code == 200
    assert resp.get_json()["user"]["email"] == account.email


def test_me_rejects_expired_and_wrong_class_tokens(client, account):
    expired = JWTTokenProvider(access_ttl=timedelta(seconds=-1)).issue_access(
        account.id, account.email
    )
    refresh = JWTTokenProvider().issue_refresh(account.id, "some-jti")

    for token in (expired, refresh, "garbage"):
        client.set_cookie("access_token", token)
        assert client.get(f"{BASE}/me").status_code == 401


def test_me_rejects_deleted_user(client, session):
    row = UserFactory()
    session.commit()
    user_id, email = row.id, row.email
    token = JWTTokenProvider().issue_access(user_id, email)
    session.delete(session.get(User, user_id))
    session.commit()

    client.set_cookie("access_token", token)
    assert client.get(f"{BASE}/me").status_code == 401


def test_me_does_not_consult_session_store(client, account):
    login = _login(client, account)
    access = _cookie_value(login, "access_token")
    client.post(f"{BASE}/logout")

    client.set_cookie("access_token", access)
    assert client.get(f"{BASE}/me").status_code == 200


# ------------------------------ google oauth ------------------------------ #
def test_google_start_redirects_with_state_cookie(client):
    resp = client.get(f"{BASE}/google")

    assert resp.status_code == 302
    assert resp.headers["Location"].startswith(AUTH_URL)
    state_cookie = _set_cookie(resp, "oauth_state")
    assert "HttpOnly" in state_cookie and "SameSite=Lax" in state_cookie


@responses.activate
def test_google_callback_logs_in_and_redirects(client, session):
    responses.add(responses.POST, TOKEN_URL, json={"access_token": "ya29"}, status=200)
    responses.add(
        responses.GET,
        USERINFO_URL,
        json={"email": "new.google@example.com", "email_verified": True, "name": "G"},
        status=200,
    )
    start = client.get(f"{BASE}/google")
    state = parse_qs(urlparse(start.headers["Location"]).query)["state"][0]

    resp = client.get(f"{BASE}/google/callback", query_string={"state": state, "code": "abc"})

    assert resp.status_code == 302
    assert resp.headers["Location"] == "http://localhost:3000/notebooks"
    assert "Max-Age=900" in _set_cookie(resp, "access_token")
    assert "Max-Age=2592000" in _set_cookie(resp, "refresh_token")
    assert _set_cookie(resp, "oauth_state").startswith("oauth_state=;")
    user = session.execute(select(User).where(User.email == "new.google@example.com")).scalar_one()
    assert user.password_hash is None

    me = client.get(f"{BASE}/me")
    assert me.get_json()["user"]["email"] == "new.google@example.com"


@responses.activate
def test_google_callback_redirects_to_error_page_when_database_is_down(
    client, session, monkeypatch
):
    responses.add(responses.POST, TOKEN_URL, json={"access_token": "ya29"}, status=200)
    responses.add(
        responses.GET,
        USERINFO_URL,
        json={"email": "outage@example.com", "email_verified": True, "name": "O"},
        status=200,
    )

    def _database_down(self, email, name):
        raise OperationalError("SELECT users", {}, Exception("connection refused"))

    monkeypatch.setattr(IdentityService, "_find_or_provision", _database_down)
    start = client.get(f"{BASE}/google")
    state = parse_qs(urlparse(start.headers["Location"]).query)["state"][0]

    resp = client.get(f"{BASE}/google/callback", query_string={"state": state, "code": "abc"})

    assert resp.status_code == 302
    assert resp.headers["Location"] == "http://localhost:3000/login?error=oauth"
    assert not any(
        h.startswith(("access_token=", "refresh_token="))
        for h in resp.headers.getlist("Set-Cookie")
    )
    assert _session_count(session) == 0


@pytest.mark.parametrize(
    "query",
    [{"state": "forged", "code": "abc"}, {"error": "access_denied"}],
)
def test_google_callback_failures_redirect_to_error_page(client, session, query):
    client.get(f"{BASE}/google")

    resp = client.get(f"{BASE}/google/callback", query_string=query)

    assert resp.status_code == 302
    assert resp.headers["Location"] == "http://localhost:3000/login?error=oauth"
    assert not any(
        h.startswith(("access_token=", "refresh_token="))
        for h in resp.headers.getlist("Set-Cookie")
    )
    assert _session_count(session) == 0


# ------------------------------ misc / ambient ---------------------------- #
def test_health_reports_db_and_store(client):
    resp = client.get(f"{BASE}/health")
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["status"] == "ok"
    assert body["db"] == "ok"
    assert body["store"] == {"backend": "sql", "status": "ok"}


def test_request_id_is_echoed(client):
    resp = client.get(f"{BASE}/me", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.get_json()["request_id"] == "req-123"


def test_unknown_route_is_problem_json(client):
    resp = client.get(f"{BASE}/nope")
    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
    assert resp.get_json()["code"] == "not_found"
