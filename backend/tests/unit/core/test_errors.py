from __future__ import annotations

import pytest
from auth_api.core import errors as api_errors
from auth_api.services._shared.base import BaseService
from auth_api.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidInputError,
    InvalidTokenError,
    ProviderError,
    SessionRevokedError,
    SigningUnavailableError,
    StoreUnavailableError,
)


@pytest.mark.parametrize(
    "exc, expected, status",
    [
        (InvalidCredentialsError("x"), api_errors.Unauthorized, 401),
        (InvalidTokenError("x"), api_errors.Unauthorized, 401),
        (SessionRevokedError("x"), api_errors.Unauthorized, 401),
        (ConflictError("User", "email already in use"), api_errors.Conflict, 409),
        (InvalidInputError("bad"), api_errors.BadRequest, 400),
        (StoreUnavailableError("down"), api_errors.ServiceUnavailable, 503),
        (SigningUnavailableError("no key"), api_errors.InternalError, 500),
        (ProviderError("boom"), api_errors.InternalError, 500),
    ],
)
def test_translate_exceptions(exc, expected, status):
    translated = BaseService.translate_exceptions(exc)
    assert type(translated) is expected
    assert translated.status_code == status


def test_authentication_failures_render_identically(app):
    bodies = []
    for exc in (InvalidCredentialsError("a"), InvalidTokenError("b"), SessionRevokedError("c")):
        with app.test_request_context("/api/auth/refresh"):
            problem = BaseService.translate_exceptions(exc).to_problem()
        problem.pop("request_id")
        bodies.append(problem)
    assert bodies[0] == bodies[1] == bodies[2]
    assert bodies[0]["detail"] == "Unauthorized"


def test_unknown_exceptions_pass_through():
    exc = KeyError("x")
    assert BaseService.translate_exceptions(exc) is exc
