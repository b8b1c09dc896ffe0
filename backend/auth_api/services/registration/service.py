"""
UserRegistrationService
=======================

Creates a password account. Registration does not log the user in; the
client calls the login route afterwards.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth_api.repositories.user import UserRepository
from auth_api.services._shared.base import BaseService
from auth_api.services._shared.errors import ConflictError, InvalidInputError, violates
from auth_api.services.auth.credentials import hash_password
from auth_api.services.identity.dto import UserPublicOut
from auth_api.services.identity.service import to_public
from auth_api.services.registration.dto import UserRegistrationIn

log = logging.getLogger(__name__)


class UserRegistrationService(BaseService):
    """Orchestrates the user registration process."""

    def register(self, dto: UserRegistrationIn) -> UserPublicOut:
        """
        Register a user with a password credential.

        :param dto: Registration input.
        :type dto: :class:`UserRegistrationIn`
        :returns: The created user.
        :rtype: :class:`UserPublicOut`
        :raises ConflictError: When the email is already registered.
        :raises InvalidInputError: When the model rejects the email.
        """
        norm_email = dto.email.lower().strip()

        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_email(norm_email):
                    raise ConflictError("User", "email already in use")
                try:
                    user = repo.model(
                        email=norm_email,
                        name=dto.name,
                        password_hash=hash_password(dto.password),
                    )
                except ValueError as exc:
                    raise InvalidInputError(str(exc)) from exc
                repo.add(user)
                out = to_public(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email"):
                raise ConflictError("User", "email already in use") from exc
            raise

        log.info("auth.register", extra={"user_id": out.id})
        return out
