"""Infrastructure adapters and their wiring into the Flask app.

The token provider and the session store are built once per application and
kept in ``app.extensions``; request handlers fetch them through
:func:`get_token_provider` and :func:`get_session_store`.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import cast

from flask import Flask, current_app

from auth_api.services._shared.ports import SessionStore, TokenProvider

log = logging.getLogger(__name__)

TOKEN_PROVIDER_KEY = "auth_token_provider"
SESSION_STORE_KEY = "auth_session_store"


def build_session_store(app: Flask) -> SessionStore:
    """Instantiate the store selected by ``SESSION_STORE_BACKEND``.

    :raises RuntimeError: On an unknown backend, or ``redis`` without ``REDIS_URL``.
    """
    backend = str(app.config.get("SESSION_STORE_BACKEND", "sql")).lower()
    if backend == "sql":
        from auth_api.infra.sql.sqlalchemy_session_store import SQLAlchemySessionStore

        return SQLAlchemySessionStore(
            retry_attempts=int(app.config.get("STORE_RETRY_ATTEMPTS", 3)),
            retry_backoff=float(app.config.get("STORE_RETRY_BACKOFF_SECONDS", 0.05)),
        )
    if backend == "redis":
        from auth_api.core.extensions import get_redis
        from auth_api.infra.redis.redis_session_store import RedisSessionStore

        return RedisSessionStore(get_redis())
    raise RuntimeError(f"Unknown SESSION_STORE_BACKEND: {backend!r}")


def init_app(app: Flask) -> None:
    """Build the token provider and session store for ``app``."""
    from auth_api.infra.jwt.flask_jwt_token_provider import JWTTokenProvider

    app.extensions[TOKEN_PROVIDER_KEY] = JWTTokenProvider(
        access_ttl=timedelta(seconds=int(app.config["ACCESS_TOKEN_TTL_SECONDS"])),
        refresh_ttl=timedelta(seconds=int(app.config["REFRESH_TOKEN_TTL_SECONDS"])),
    )
    store = build_session_store(app)
    app.extensions[SESSION_STORE_KEY] = store
    log.info("auth.session_store.ready backend=%s", type(store).__name__)


def get_token_provider() -> TokenProvider:
    return cast(TokenProvider, current_app.extensions[TOKEN_PROVIDER_KEY])


def get_session_store() -> SessionStore:
    return cast(SessionStore, current_app.extensions[SESSION_STORE_KEY])
