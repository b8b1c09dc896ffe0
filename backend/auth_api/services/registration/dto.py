"""DTOs for the registration process service."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class UserRegistrationIn:
    """
    Input DTO for self-service registration.

    :param email: Login email (normalized by the model).
    :type email: str
    :param password: Raw password; hashed before it reaches the model.
    :type password: str
    :param name: Display name.
    :type name: str | None
    """

    email: str
    password: str
    name: str | None = None
