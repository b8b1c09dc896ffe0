"""JSON logging for the auth service, correlated per request.

Every record is one JSON object on stdout. Auth events pass their context
through ``extra=`` (``user_id``, ``session_id``, ``reason``...); only the keys
listed in :data:`EVENT_FIELDS` are ever emitted, so a stray token or password
in ``extra`` never reaches the log stream.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any, TextIO
from uuid import uuid4

from flask import Flask, Response, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_ENVIRON_KEY = "auth_api.request_id"
INBOUND_ID_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

EVENT_FIELDS = ("user_id", "session_id", "reason", "provider", "endpoint", "elapsed_ms")

# Inbound ids are echoed into logs and headers; anything else is replaced
_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


class JSONFormatter(logging.Formatter):
    """Serialize a record and its whitelisted auth context as JSON."""

    def __init__(self, *, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if self.service:
            entry["service"] = self.service
        entry.update(
            {field: getattr(record, field) for field in EVENT_FIELDS if hasattr(record, field)}
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on every record (``None`` outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def _inbound_request_id() -> str | None:
    for header in INBOUND_ID_HEADERS:
        value = (request.headers.get(header) or "").strip()
        if value and _SAFE_ID.match(value):
            return value
    return None


def ensure_request_id() -> str:
    """
    Return the correlation id of the current request.

    The first well-formed ``X-Request-ID`` / ``X-Correlation-ID`` header wins;
    otherwise a UUID4 is generated. The id is kept in the request's WSGI
    environ; one app context (and its ``g``) may serve several requests.
    Outside a request a fresh UUID4 is returned each call.
    """
    if not has_request_context():
        return str(uuid4())
    environ = request.environ
    cached = environ.get(REQUEST_ID_ENVIRON_KEY)
    if cached is None:
        cached = environ[REQUEST_ID_ENVIRON_KEY] = _inbound_request_id() or str(uuid4())
    return cached


def configure_logging(
    level: str | int = "INFO", *, service: str | None = None, stream: TextIO | None = None
) -> None:
    """Replace root handlers with a single JSON handler on ``stream`` (stdout)."""
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter(service=service))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Seed the correlation id before each request and echo it on the response."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _assign_request_id() -> None:
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response: Response) -> Response:
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["JSONFormatter", "RequestIdFilter", "configure_logging", "ensure_request_id", "init_app"]
