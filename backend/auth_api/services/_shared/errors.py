"""
Service-layer failures.

Nothing here knows about Flask or HTTP status codes. The set is closed:
:meth:`auth_api.services._shared.base.BaseService.translate_exceptions` maps
each family to exactly one problem response.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Tell whether ``exc`` was caused by the named unique constraint.

    PostgreSQL puts the constraint name in the message. SQLite only says
    ``UNIQUE constraint failed: <table>.<column>``, so for ``uq_`` names every
    ``table.column`` split of the remainder is tried too.

    :param exc: Error raised on flush or commit.
    :param constraint_name: Conventional name such as ``uq_users_email``.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    name = constraint_name.lower()
    if name in message:
        return True
    kind, _, rest = name.partition("_")
    if kind != "uq" or "unique" not in message:
        return False
    splits = (f"{rest[:i]}.{rest[i + 1:]}" for i, ch in enumerate(rest) if ch == "_")
    return any(candidate in message for candidate in splits)


class ServiceError(Exception):
    """Root of every error a service may raise; safe to raise from stores and repositories."""


# Authentication. Every subclass reaches the client as the same 401.


class AuthenticationError(ServiceError):
    """The caller could not be authenticated."""

    reason = "unauthorized"


class InvalidCredentialsError(AuthenticationError):
    """Unknown email, wrong password, or an account without a password."""

    reason = "invalid_credentials"


class InvalidTokenError(AuthenticationError):
    """A token failed verification or does not match its session."""

    reason = "invalid_token"


class SessionRevokedError(AuthenticationError):
    """The session behind a refresh token is absent or already revoked."""

    reason = "session_revoked"


# Token verification, raised by token providers and handled by the services.


class TokenInvalidError(ServiceError):
    """Signature, structure, expiry or ``type`` claim check failed."""


class TokenExpiredError(TokenInvalidError):
    """Signed and well-formed, but past ``exp``."""


class ConflictError(ServiceError):
    """
    A uniqueness rule was broken (email taken, ``jti`` reused).

    :param entity: Kind of record, e.g. ``"User"``.
    :param detail: What collided.
    """

    def __init__(self, entity: str, detail: str) -> None:
        super().__init__(f"{entity}: {detail}")
        self.entity = entity
        self.detail = detail


class InvalidInputError(ServiceError):
    """Schema-valid input that breaks a domain rule."""


class ProviderError(ServiceError):
    """
    The external identity provider denied the login, failed, or returned
    unusable data.

    :param reason: Short machine tag (``denied``, ``bad_state``, ``http`` ...)
        recorded in logs.
    """

    def __init__(self, message: str = "Identity provider failure", *, reason: str = "provider") -> None:
        super().__init__(message)
        self.reason = reason


class InfrastructureError(ServiceError):
    """A backing dependency failed; clients get a generic response."""


class StoreUnavailableError(InfrastructureError):
    """The session store could not complete an operation in time."""


class SigningUnavailableError(InfrastructureError):
    """Tokens cannot be signed (missing key or library failure)."""
