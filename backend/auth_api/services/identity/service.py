"""
IdentityService
===============

Lookups of the ``User`` aggregate, plus the get-or-create path used when an
external identity provider vouches for an email address.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from auth_api.models.user import User
from auth_api.repositories.user import UserRepository
from auth_api.services._shared.base import BaseService
from auth_api.services._shared.errors import InvalidInputError, StoreUnavailableError, violates
from auth_api.services.identity.dto import ExternalIdentityIn, UserPublicOut

log = logging.getLogger(__name__)


def to_public(user: User) -> UserPublicOut:
    """Map a model instance to its public DTO."""
    return UserPublicOut(id=user.id, email=user.email, name=user.name)


class IdentityService(BaseService):
    """
    Application service for reading and provisioning users.

    Responsibilities
    ----------------
    - Resolve users by id or email for authentication paths.
    - Provision accounts for identity-provider logins.
    """

    def get_user(self, user_id: int) -> UserPublicOut | None:
        """
        Return the user with ``user_id`` or ``None`` when it does not exist.

        :param user_id: User identifier.
        :type user_id: int
        :rtype: UserPublicOut | None
        """
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            return to_public(user) if user is not None else None

    def get_user_by_email(self, email: str) -> UserPublicOut | None:
        """Return the user registered under ``email`` (case-insensitive)."""
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(email)
            return to_public(user) if user is not None else None

    def resolve_external(self, dto: ExternalIdentityIn) -> UserPublicOut:
        """
        Return the local user for a provider-verified email, creating it on first login.

        Accounts created here have no password hash. An existing account keyed
        by the same email is reused as-is; its profile is not overwritten.

        :param dto: Identity reported by the provider.
        :type dto: ExternalIdentityIn
        :returns: Public-safe user DTO.
        :rtype: UserPublicOut
        :raises InvalidInputError: If the email is unusable.
        :raises StoreUnavailableError: The user table could not be reached.
        """
        email = (dto.email or "").strip().lower()
        if not email:
            raise InvalidInputError("Identity provider returned no email.")
        try:
            return self._find_or_provision(email, dto.name)
        except (OperationalError, PoolTimeoutError) as exc:
            log.error("identity.store_unavailable", exc_info=True)
            raise StoreUnavailableError("User store unavailable") from exc

    def _find_or_provision(self, email: str, name: str | None) -> UserPublicOut:
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                existing = repo.get_by_email(email)
                if existing is not None:
                    return to_public(existing)
                try:
                    user = repo.add(repo.model(email=email, name=name, password_hash=None))
                except ValueError as exc:
                    raise InvalidInputError(str(exc)) from exc
                log.info("identity.user_provisioned", extra={"user_id": user.id})
                return to_public(user)
        except IntegrityError as exc:
            if not violates(exc, "uq_users_email"):
                raise
            # Lost a race against a concurrent first login; the row exists now
            with self.ro_uow() as uow_retry:
                winner = uow_retry.users.get_by_email(email)
                if winner is None:
                    raise
                return to_public(winner)
