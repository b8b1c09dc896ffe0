"""
DTOs for the identity service.

All DTOs are framework-agnostic and safe to serialize to API responses.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ExternalIdentityIn:
    """
    Identity asserted by an external provider.

    :param email: Verified email reported by the provider.
    :type email: str
    :param name: Display name reported by the provider.
    :type name: str | None
    """

    email: str
    name: str | None = None


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public-safe representation of a user.

    :param id: User identifier.
    :type id: int
    :param email: Normalized email.
    :type email: str
    :param name: Display name.
    :type name: str | None
    """

    id: int
    email: str
    name: str | None = None
