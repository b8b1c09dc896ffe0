"""Values passed into and out of :class:`~auth_api.services.auth.AuthService`."""

from __future__ import annotations

from dataclasses import dataclass

from auth_api.services.identity.dto import UserPublicOut


@dataclass(frozen=True, slots=True)
class ClientMeta:
    """
    Where a login came from; stored on the session it creates.

    :param ip: Remote address after trusted proxy hops.
    :param user_agent: ``User-Agent`` header, already truncated by the caller.
    """

    ip: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """The refresh token read from the client's cookie."""

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """``refresh_token`` is ``None`` when the client no longer has the cookie."""

    refresh_token: str | None = None


@dataclass(frozen=True, slots=True)
class TokenPairOut:
    """
    Result of a login or a rotation.

    :param user: Public view of the authenticated account.
    :param access_token: Short-lived token for API calls.
    :param refresh_token: Long-lived token bound to ``session_id``.
    :param session_id: Session that ``refresh_token`` rotates.
    """

    user: UserPublicOut
    access_token: str
    refresh_token: str
    session_id: int
