"""Shared API helpers: responses, service wiring and the request authenticator."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar, cast

from flask import Response, current_app, g, jsonify, request

from auth_api.core.errors import Unauthorized
from auth_api.infra import get_session_store, get_token_provider
from auth_api.services._shared.errors import TokenExpiredError, TokenInvalidError
from auth_api.services.auth import AuthService, ClientMeta
from auth_api.services.identity import IdentityService, UserPublicOut
from auth_api.services.identity_provider import (
    GoogleOAuthClient,
    GoogleOAuthSettings,
    OAuthLoginService,
)

F = TypeVar("F", bound=Callable[..., Any])

USER_AGENT_MAX_LENGTH = 512


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request.endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]


def client_meta() -> ClientMeta:
    """Capture the caller's address and user agent for a new session."""

    user_agent = request.headers.get("User-Agent") or None
    if user_agent:
        user_agent = user_agent[:USER_AGENT_MAX_LENGTH]
    return ClientMeta(ip=request.remote_addr, user_agent=user_agent)


# --------------------------- service wiring --------------------------------


def auth_service() -> AuthService:
    """Return an :class:`AuthService` bound to the app's provider and store."""

    return AuthService(token_provider=get_token_provider(), session_store=get_session_store())


def oauth_service() -> OAuthLoginService:
    """Return the Google login bridge configured from ``current_app.config``."""

    config = current_app.config
    return OAuthLoginService(
        client=GoogleOAuthClient(GoogleOAuthSettings.from_config(config)),
        secret_key=config["SECRET_KEY"],
        auth=auth_service(),
        state_max_age=int(config.get("OAUTH_STATE_MAX_AGE_SECONDS", 600)),
    )


# --------------------------- request authenticator -------------------------


def authenticate_request() -> UserPublicOut:
    """
    Resolve the acting user from the ``access_token`` cookie.

    Missing cookie, a token that fails verification (including expiry or a
    refresh token presented as access) and a deleted user all raise the same
    :class:`Unauthorized`. The session store is not consulted.

    :returns: The authenticated user, also stored on ``g.current_user``.
    :raises Unauthorized: When the request is not authenticated.
    """
    cookie_name = current_app.config.get("JWT_ACCESS_COOKIE_NAME", "access_token")
    token = request.cookies.get(cookie_name)
    if not token:
        raise Unauthorized()

    try:
        claims = get_token_provider().verify_access(token)
    except TokenExpiredError:
        current_app.logger.info("auth.access.rejected", extra={"reason": "expired"})
        raise Unauthorized() from None
    except TokenInvalidError:
        current_app.logger.info("auth.access.rejected", extra={"reason": "invalid_token"})
        raise Unauthorized() from None

    user = IdentityService().get_user(claims.user_id)
    if user is None:
        current_app.logger.info(
            "auth.access.rejected", extra={"reason": "user_missing", "user_id": claims.user_id}
        )
        raise Unauthorized()

    g.current_user = user
    return user


def require_user(func: F) -> F:
    """Ensure the request carries a valid access token for an existing user."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        authenticate_request()
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_user() -> UserPublicOut:
    """Return the user attached by :func:`require_user`."""

    return cast(UserPublicOut, g.current_user)
