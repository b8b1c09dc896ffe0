"""RFC 7807 problem responses for every error the auth API can return."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError as MarshmallowValidationError
from sqlalchemy.exc import OperationalError
from werkzeug.exceptions import HTTPException

from auth_api.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"


def _code_for(status: int) -> str:
    """Stable snake_case code derived from the status phrase (``401`` -> ``unauthorized``)."""
    try:
        return HTTPStatus(status).phrase.lower().replace(" ", "_").replace("-", "_")
    except ValueError:
        return "error"


def _as_problem(
    *,
    status: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a Problem Details document.

    :param status: HTTP status code.
    :param code: Machine-readable error code.
    :param message: Client-safe summary; never carries token or session state.
    :param details: Optional structured payload (validation messages).
    """
    problem: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": status,
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        problem["details"] = details
    return problem


def _respond(problem: dict[str, Any], *, exc_info: bool = False) -> tuple[Response, int]:
    status = int(problem["status"])
    if status >= 500:
        log.error(
            "http.error code=%s status=%s", problem["code"], status, exc_info=exc_info
        )
    else:
        log.warning("http.error code=%s status=%s", problem["code"], status)
    resp = jsonify(problem)
    resp.mimetype = PROBLEM_MIMETYPE
    return resp, status


class APIError(Exception):
    """
    Error rendered as a problem document.

    Subclasses fix :attr:`status_code`, :attr:`code` and
    :attr:`default_message`; callers may override the message and attach
    ``details``.
    """

    status_code: int = HTTPStatus.BAD_REQUEST
    code: str = "bad_request"
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_problem(self) -> dict[str, Any]:
        return _as_problem(
            status=int(self.status_code),
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class BadRequest(APIError):
    """400: input is malformed or breaks a domain rule."""


class Unauthorized(APIError):
    """401: one body for every authentication failure.

    Unknown email, wrong password, expired or replayed token all look the
    same to the client.
    """

    status_code = HTTPStatus.UNAUTHORIZED
    code = "unauthorized"
    default_message = "Unauthorized"


class Conflict(APIError):
    """409: the email is already registered."""

    status_code = HTTPStatus.CONFLICT
    code = "conflict"
    default_message = "Conflict"


class ServiceUnavailable(APIError):
    """503: the session store or database did not answer in time."""

    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    code = "service_unavailable"
    default_message = "Service temporarily unavailable"


class InternalError(APIError):
    """500: server-side failure (e.g. tokens cannot be signed)."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    code = "internal_server_error"
    default_message = "Unexpected error"


def init_app(app: Flask) -> None:
    """
    Register the problem+json error handlers.

    Service errors are translated through
    :meth:`auth_api.services._shared.base.BaseService.translate_exceptions`;
    anything unexpected becomes a detail-free 500.
    """
    from auth_api.services._shared.base import BaseService
    from auth_api.services._shared.errors import ServiceError

    @app.errorhandler(APIError)
    def handle_api_error(err: APIError):
        return _respond(err.to_problem())

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError):
        translated = BaseService.translate_exceptions(err)
        if not isinstance(translated, APIError):  # pragma: no cover - closed taxonomy
            translated = InternalError()
        return _respond(translated.to_problem(), exc_info=translated.status_code >= 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
        message = (err.description or HTTPStatus(status).phrase).strip()
        if status == HTTPStatus.NOT_FOUND:
            message = f"Route '{request.path}' not found"
        return _respond(_as_problem(status=status, code=_code_for(status), message=message))

    @app.errorhandler(MarshmallowValidationError)
    def handle_validation_error(err: MarshmallowValidationError):
        return _respond(
            _as_problem(
                status=HTTPStatus.BAD_REQUEST,
                code="validation_error",
                message="Validation failed",
                details={"errors": err.messages},
            )
        )

    @app.errorhandler(OperationalError)
    def handle_operational_error(err: OperationalError):
        return _respond(ServiceUnavailable().to_problem(), exc_info=True)

    @app.errorhandler(Exception)
    def handle_unexpected_error(err: Exception):
        return _respond(InternalError().to_problem(), exc_info=True)
