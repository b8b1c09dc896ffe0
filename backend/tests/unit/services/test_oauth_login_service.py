from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
import responses
from auth_api.services._shared.errors import ProviderError, StoreUnavailableError
from auth_api.services._shared.ports import InMemorySessionStore, StubTokenProvider
from auth_api.services.auth import AuthService, ClientMeta
from auth_api.services.identity_provider import (
    FlowState,
    GoogleOAuthClient,
    GoogleOAuthSettings,
    OAuthFlow,
    OAuthLoginService,
)
from auth_api.services.identity_provider.google import AUTH_URL, TOKEN_URL, USERINFO_URL

SETTINGS = GoogleOAuthSettings(
    client_id="client-id",
    client_secret="client-secret",
    redirect_uri="http://localhost/api/auth/google/callback",
    timeout=2.0,
)


class FailingStore(InMemorySessionStore):
    def create(self, **kwargs):
        raise StoreUnavailableError("down")


@pytest.fixture()
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


def _service(store, *, settings=SETTINGS, max_age=600) -> OAuthLoginService:
    auth = AuthService(token_provider=StubTokenProvider(), session_store=store)
    return OAuthLoginService(
        client=GoogleOAuthClient(settings),
        secret_key="test-secret",
        auth=auth,
        state_max_age=max_age,
    )


@pytest.fixture()
def service(store) -> OAuthLoginService:
    return _service(store)


def _state_of(flow: OAuthFlow) -> str:
    return parse_qs(urlparse(flow.authorization_url).query)["state"][0]


def _mock_google(email="oauth@example.com", *, verified=True, name="OAuth User"):
    responses.add(responses.POST, TOKEN_URL, json={"access_token": "ya29.token"}, status=200)
    responses.add(
        responses.GET,
        USERINFO_URL,
        json={"email": email, "email_verified": verified, "name": name},
        status=200,
    )


# ------------------------------- initiate --------------------------------- #
def test_initiate_builds_consent_url(service):
    flow = service.initiate()

    assert flow.state is FlowState.INITIATED
    assert flow.nonce
    parsed = urlparse(flow.authorization_url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == AUTH_URL
    query = parse_qs(parsed.query)
    assert query["client_id"] == ["client-id"]
    assert query["redirect_uri"] == [SETTINGS.redirect_uri]
    assert query["response_type"] == ["code"]
    assert set(query["scope"][0].split()) == {"openid", "email", "profile"}
    assert query["state"][0] != flow.nonce


def test_initiate_without_configuration_raises(store):
    service = _service(store, settings=GoogleOAuthSettings("", "", ""))
    with pytest.raises(ProviderError) as excinfo:
        service.initiate()
    assert excinfo.value.reason == "not_configured"


# ------------------------------- callback --------------------------------- #
@responses.activate
def test_callback_provisions_user_and_opens_session(service, store, session):
    _mock_google()
    started = service.initiate()
    meta = ClientMeta(ip="198.51.100.1", user_agent="browser")

    flow = service.callback(
        state=_state_of(started), code="auth-code", error=None, nonce_cookie=started.nonce, meta=meta
    )

    assert flow.state is FlowState.COMPLETED
    assert flow.tokens.user.email == "oauth@example.com"
    record = store.all()[0]
    assert record.id == flow.tokens.session_id
    assert (record.ip, record.user_agent) == (meta.ip, meta.user_agent)

    token_call = responses.calls[0].request
    assert "code=auth-code" in token_call.body
    assert "grant_type=authorization_code" in token_call.body
    assert responses.calls[1].request.headers["Authorization"] == "Bearer ya29.token"


@responses.activate
def test_callback_reuses_existing_account(service, user):
    _mock_google(email=user.email)
    started = service.initiate()

    flow = service.callback(
        state=_state_of(started), code="c", error=None, nonce_cookie=started.nonce
    )

    assert flow.state is FlowState.COMPLETED
    assert flow.tokens.user.id == user.id


@pytest.mark.parametrize(
    "overrides, reason",
    [
        ({"state": None}, "bad_state"),
        ({"state": "tampered.state.value"}, "bad_state"),
        ({"nonce_cookie": None}, "bad_state"),
        ({"nonce_cookie": "someone-else"}, "bad_state"),
        ({"error": "access_denied"}, "denied"),
        ({"code": None}, "no_code"),
    ],
)
def test_callback_rejections_fail_the_flow(service, store, overrides, reason):
    started = service.initiate()
    kwargs = {
        "state": _state_of(started),
        "code": "c",
        "error": None,
        "nonce_cookie": started.nonce,
        **overrides,
    }

    flow = service.callback(**kwargs)

    assert flow.state is FlowState.FAILED
    assert flow.error.reason == reason
    assert store.all() == []


def test_callback_rejects_expired_state(store):
    service = _service(store, max_age=-1)
    started = service.initiate()

    flow = service.callback(
        state=_state_of(started), code="c", error=None, nonce_cookie=started.nonce
    )

    assert flow.state is FlowState.FAILED
    assert flow.error.reason == "bad_state"


@responses.activate
def test_callback_rejects_unverified_email(service, store):
    _mock_google(verified=False)
    started = service.initiate()

    flow = service.callback(
        state=_state_of(started), code="c", error=None, nonce_cookie=started.nonce
    )

    assert flow.error.reason == "unverified_email"
    assert store.all() == []


@responses.activate
def test_callback_maps_provider_http_failure(service):
    responses.add(responses.POST, TOKEN_URL, json={"error": "invalid_grant"}, status=400)
    started = service.initiate()

    flow = service.callback(
        state=_state_of(started), code="c", error=None, nonce_cookie=started.nonce
    )

    assert flow.state is FlowState.FAILED
    assert flow.error.reason == "http"


@responses.activate
def test_callback_maps_store_outage_to_failed_flow(session):
    _mock_google()
    service = _service(FailingStore())
    started = service.initiate()

    flow = service.callback(
        state=_state_of(started), code="c", error=None, nonce_cookie=started.nonce
    )

    assert flow.state is FlowState.FAILED
    assert flow.error.reason == "unavailable"


def test_flow_terminal_states_cannot_change():
    flow = OAuthFlow().fail(ProviderError("x"))
    with pytest.raises(RuntimeError):
        flow.fail(ProviderError("again"))
