"""Google sign-in endpoints (redirect-based, browser facing)."""

from __future__ import annotations

from flask import Blueprint, current_app, redirect, request

from auth_api.api.cookies import (
    OAUTH_STATE_COOKIE,
    clear_oauth_state_cookie,
    set_auth_cookies,
    set_oauth_state_cookie,
)
from auth_api.api.deps import client_meta, oauth_service, timing
from auth_api.services._shared.errors import ProviderError
from auth_api.services.identity_provider import FlowState

bp = Blueprint("oauth", __name__)


def _frontend_url(path_key: str, default: str) -> str:
    base = str(current_app.config.get("APP_URL", "")).rstrip("/")
    return f"{base}{current_app.config.get(path_key, default)}"


def _error_redirect():
    return redirect(_frontend_url("OAUTH_ERROR_PATH", "/login?error=oauth"))


@bp.get("")
@timing
def start():
    """Redirect the browser to Google's consent screen."""

    try:
        flow = oauth_service().initiate()
    except ProviderError as exc:
        current_app.logger.warning(
            "auth.oauth.failed", extra={"provider": "google", "reason": exc.reason}
        )
        return _error_redirect()
    response = redirect(flow.authorization_url)
    return set_oauth_state_cookie(response, flow.nonce)


@bp.get("/callback")
@timing
def callback():
    """Finish the Google flow and land on the frontend with cookies set."""

    flow = oauth_service().callback(
        state=request.args.get("state"),
        code=request.args.get("code"),
        error=request.args.get("error"),
        nonce_cookie=request.cookies.get(OAUTH_STATE_COOKIE),
        meta=client_meta(),
    )
    if flow.state is FlowState.COMPLETED and flow.tokens is not None:
        response = redirect(_frontend_url("POST_LOGIN_PATH", "/notebooks"))
        set_auth_cookies(response, flow.tokens)
    else:
        response = _error_redirect()
    return clear_oauth_state_cookie(response)
