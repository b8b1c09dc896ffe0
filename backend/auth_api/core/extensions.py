"""Process-wide extension objects, bound to the app in :func:`init_app`."""

from __future__ import annotations

import logging

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.backoff import ExponentialBackoff  # type: ignore[import-untyped]
from redis.exceptions import ConnectionError as RedisConnectionError  # type: ignore[import-untyped]
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from redis.exceptions import TimeoutError as RedisTimeoutError  # type: ignore[import-untyped]
from redis.retry import Retry  # type: ignore[import-untyped]
from sqlalchemy import MetaData

log = logging.getLogger(__name__)

# Deterministic constraint names keep Alembic autogenerate diffs stable
metadata = MetaData(
    naming_convention={
        "ix": "ix_%(table_name)s_%(column_0_name)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

db: SQLAlchemy = SQLAlchemy(metadata=metadata, session_options={"autoflush": False})
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

#: Set by :func:`init_app` when ``REDIS_URL`` is configured.
redis_client: redis.Redis | None = None


def build_redis_client(url: str, *, timeout: float, retries: int) -> redis.Redis:
    """Redis client with bounded waits and reconnect-with-backoff.

    Parameters
    ----------
    url: str
        ``redis://`` or ``rediss://`` URL, credentials included.
    timeout: float
        Socket and connect timeout in seconds.
    retries: int
        Reconnect attempts per command before the error reaches the caller.
    """
    return redis.Redis.from_url(
        url,
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
        retry=Retry(ExponentialBackoff(cap=timeout, base=0.05), retries),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
        health_check_interval=30,
    )


def _init_redis(app: Flask) -> None:
    global redis_client
    url = app.config.get("REDIS_URL")
    if not url:
        redis_client = None
        app.extensions.pop("redis_client", None)
        return

    client = build_redis_client(
        url,
        timeout=float(app.config.get("STORE_TIMEOUT_SECONDS", 5.0)),
        retries=int(app.config.get("STORE_RETRY_ATTEMPTS", 3)),
    )
    try:
        client.ping()
    except RedisError:
        # Startup continues; store calls answer 503 until Redis is reachable.
        log.warning("redis.unreachable_at_startup", exc_info=True)
    redis_client = client
    app.extensions["redis_client"] = client


def init_app(app: Flask) -> None:
    """Bind the database, migrations, JWT manager, limiter and Redis to ``app``.

    The models package is imported here so Alembic sees both tables.
    """
    db.init_app(app)
    from auth_api import models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    _init_redis(app)


def get_redis() -> redis.Redis:
    """The configured Redis client; raises ``RuntimeError`` without ``REDIS_URL``."""
    if redis_client is None:
        raise RuntimeError("Redis client is not initialized. Set REDIS_URL and call init_app().")
    return redis_client
