"""Password authentication and session endpoints."""

from __future__ import annotations

from flask import Blueprint, current_app, request

from auth_api.api.cookies import clear_auth_cookies, set_auth_cookies
from auth_api.api.deps import (
    auth_service,
    client_meta,
    current_user,
    json_response,
    require_user,
    timing,
)
from auth_api.core.errors import Unauthorized
from auth_api.core.extensions import limiter
from auth_api.schemas import LoginSchema, RegisterSchema, UserSchema
from auth_api.services.auth import LoginIn, LogoutIn, RefreshIn
from auth_api.services.registration import UserRegistrationIn, UserRegistrationService

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
user_schema = UserSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "10 per minute"))


def _refresh_cookie() -> str | None:
    return request.cookies.get(current_app.config.get("JWT_REFRESH_COOKIE_NAME", "refresh_token"))


@bp.post("/register")
@timing
def register():
    """Create a password account. Does not log the user in."""

    data = register_schema.load(request.get_json(silent=True) or {})
    user = UserRegistrationService().register(UserRegistrationIn(**data))
    return json_response({"user": user_schema.dump(user)}, status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Verify credentials, open a session and set both auth cookies."""

    data = login_schema.load(request.get_json(silent=True) or {})
    pair = auth_service().login(LoginIn(**data), client_meta())
    response = json_response({"user": user_schema.dump(pair.user)})
    return set_auth_cookies(response, pair)


@bp.post("/refresh")
@timing
def refresh():
    """Rotate the refresh token from the cookie and set a new pair."""

    token = _refresh_cookie()
    if not token:
        raise Unauthorized()
    pair = auth_service().refresh(RefreshIn(refresh_token=token))
    response = json_response({"user": user_schema.dump(pair.user)})
    return set_auth_cookies(response, pair)


@bp.post("/logout")
@timing
def logout():
    """Revoke the current session (if any) and clear the cookies."""

    auth_service().logout(LogoutIn(refresh_token=_refresh_cookie()))
    return clear_auth_cookies(json_response({"success": True}))


@bp.get("/me")
@require_user
@timing
def me():
    """Return the user behind the access cookie."""

    return json_response({"user": user_schema.dump(current_user())})
