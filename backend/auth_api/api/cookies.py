"""Auth cookie helpers built on Flask-JWT-Extended's cookie transport."""

from __future__ import annotations

from flask import Response, current_app
from flask_jwt_extended import set_access_cookies, set_refresh_cookies, unset_jwt_cookies

from auth_api.services.auth import TokenPairOut

OAUTH_STATE_COOKIE = "oauth_state"


def set_auth_cookies(response: Response, pair: TokenPairOut) -> Response:
    """Attach ``access_token`` and ``refresh_token`` cookies for ``pair``.

    Name, path, ``SameSite`` and ``Secure`` come from the ``JWT_*`` settings;
    both cookies are ``HttpOnly`` with ``Max-Age`` equal to the token lifetime.
    """
    config = current_app.config
    set_access_cookies(
        response, pair.access_token, max_age=int(config["ACCESS_TOKEN_TTL_SECONDS"])
    )
    set_refresh_cookies(
        response, pair.refresh_token, max_age=int(config["REFRESH_TOKEN_TTL_SECONDS"])
    )
    return response


def clear_auth_cookies(response: Response) -> Response:
    """Expire both auth cookies."""
    unset_jwt_cookies(response)
    return response


def set_oauth_state_cookie(response: Response, nonce: str) -> Response:
    config = current_app.config
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        nonce,
        max_age=int(config.get("OAUTH_STATE_MAX_AGE_SECONDS", 600)),
        httponly=True,
        secure=bool(config.get("JWT_COOKIE_SECURE", False)),
        samesite="Lax",
        path="/",
    )
    return response


def clear_oauth_state_cookie(response: Response) -> Response:
    config = current_app.config
    response.delete_cookie(
        OAUTH_STATE_COOKIE,
        path="/",
        httponly=True,
        secure=bool(config.get("JWT_COOKIE_SECURE", False)),
        samesite="Lax",
    )
    return response
