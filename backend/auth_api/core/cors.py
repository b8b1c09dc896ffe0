"""Cross-origin policy for the cookie-authenticated auth routes."""

from __future__ import annotations

from flask import Flask
from flask_cors import CORS

AUTH_ROUTES = r"/api/auth/*"


def allowed_origins(raw: str | None) -> list[str]:
    """Split a comma-separated ``CORS_ORIGINS`` value; ``"*"`` yields an empty list."""
    origins = [item.strip().rstrip("/") for item in (raw or "").split(",")]
    return [o for o in origins if o and o != "*"]


def init_app(app: Flask) -> None:
    """Let the configured frontends call ``/api/auth/*`` with their cookies.

    Browsers refuse credentialed requests to a wildcard origin, so cookies are
    only allowed when ``CORS_ORIGINS`` names concrete origins. Without any,
    the routes answer every origin but the browser will not attach the auth
    cookies. ``X-Request-ID`` is exposed so the frontend can quote it.
    """
    origins = allowed_origins(app.config.get("CORS_ORIGINS"))
    CORS(
        app,
        resources={AUTH_ROUTES: {"origins": origins or "*"}},
        supports_credentials=bool(origins),
        expose_headers=["X-Request-ID"],
        max_age=app.config.get("CORS_MAX_AGE", 600),
    )
