"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from auth_api.api.deps import json_response, timing
from auth_api.core.extensions import db, get_redis

bp = Blueprint("health", __name__)


def _db_status() -> str:
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        return "fail"
    finally:
        db.session.rollback()
    return "ok"


def _store_status(backend: str, db_status: str) -> str:
    if backend != "redis":
        return db_status
    try:
        get_redis().ping()
    except (RedisError, RuntimeError):
        current_app.logger.exception("healthcheck.store_error")
        return "fail"
    return "ok"


@bp.get("/health")
@timing
def healthcheck():
    """Return service, database and session-store health."""

    backend = str(current_app.config.get("SESSION_STORE_BACKEND", "sql"))
    db_status = _db_status()
    store_status = _store_status(backend, db_status)
    payload = {
        "status": "ok" if db_status == store_status == "ok" else "degraded",
        "db": db_status,
        "store": {"backend": backend, "status": store_status},
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
