# auth_api/services/_shared/base.py
from __future__ import annotations

from collections.abc import Callable

from auth_api.core import errors as api_errors
from auth_api.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    ServiceError,
    SigningUnavailableError,
    StoreUnavailableError,
)
from auth_api.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

# Checked in order; the first matching service error decides the HTTP error.
# Every authentication failure renders the same 401.
_HTTP_TRANSLATIONS: tuple[tuple[type[ServiceError], Callable[[ServiceError], Exception]], ...] = (
    (AuthenticationError, lambda _: api_errors.Unauthorized()),
    (ConflictError, lambda exc: api_errors.Conflict(str(exc))),
    (InvalidInputError, lambda exc: api_errors.BadRequest(str(exc))),
    (StoreUnavailableError, lambda _: api_errors.ServiceUnavailable()),
    (SigningUnavailableError, lambda _: api_errors.InternalError()),
)


class BaseService:
    """
    Common plumbing for the auth services.

    Services open units of work through :meth:`rw_uow` / :meth:`ro_uow` and
    raise :mod:`auth_api.services._shared.errors`; the HTTP layer turns those
    into responses through :meth:`translate_exceptions`.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """Return a read-write unit of work."""
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Return a read-only unit of work.

        :param isolation: Isolation level; defaults to :attr:`DEFAULT_READ_ISOLATION`.
        :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` where supported.
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map a service error to the :class:`~auth_api.core.errors.APIError` to raise.

        Service errors without a specific mapping (token or provider errors
        that escaped their caller) become a generic 500. Anything that is not
        a :class:`ServiceError` is returned unchanged.

        :param exc: Exception raised within a service.
        :returns: Translated exception.
        """
        if not isinstance(exc, ServiceError):
            return exc
        for error_type, build in _HTTP_TRANSLATIONS:
            if isinstance(exc, error_type):
                return build(exc)
        return api_errors.InternalError()
