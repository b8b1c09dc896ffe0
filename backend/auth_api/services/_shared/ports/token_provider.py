from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from auth_api.services._shared.errors import TokenExpiredError, TokenInvalidError


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Verified access-token payload.

    :ivar user_id: Subject of the token.
    :ivar email: Email embedded at issue time.
    :ivar expires_at: Absolute expiry (UTC).
    """

    user_id: int
    email: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class RefreshClaims:
    """
    Verified refresh-token payload.

    :ivar user_id: Subject of the token.
    :ivar jti: Session identifier binding the token to one session row.
    :ivar expires_at: Absolute expiry (UTC).
    """

    user_id: int
    jti: str
    expires_at: datetime


class TokenProvider(Protocol):
    """
    Port for issuing and verifying signed tokens.

    Implementations are stateless: output depends only on the signing key,
    the payload and the clock.

    * ``issue_*`` raise :class:`~auth_api.services._shared.errors.SigningUnavailableError`
      when a token cannot be signed.
    * ``verify_*`` raise :class:`~auth_api.services._shared.errors.TokenExpiredError`
      for expired tokens and :class:`~auth_api.services._shared.errors.TokenInvalidError`
      for every other failure, including a token of the wrong ``type``.
    """

    def issue_access(self, user_id: int, email: str) -> str: ...

    def issue_refresh(self, user_id: int, jti: str) -> str: ...

    def verify_access(self, token: str) -> AccessClaims: ...

    def verify_refresh(self, token: str) -> RefreshClaims: ...


class StubTokenProvider(TokenProvider):
    """
    Deterministic token provider used in unit tests.

    Tokens are opaque strings (``"<type>.<sub>.<n>"``) whose claims are kept
    in memory. :meth:`expire` and :meth:`forge` let tests simulate expiry
    and tampering without a clock or a signing key.
    """

    def __init__(
        self,
        *,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=30),
    ) -> None:
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}
        self._expired: set[str] = set()

    def _mk(self, ttype: str, user_id: int, ttl: timedelta, **claims: Any) -> str:
        self._seq += 1
        token = f"{ttype}.{user_id}.{self._seq}"
        self._issued[token] = {
            "type": ttype,
            "sub": user_id,
            "exp": datetime.now(UTC) + ttl,
            **claims,
        }
        return token

    def issue_access(self, user_id: int, email: str) -> str:
        return self._mk("access", user_id, self.access_ttl, email=email)

    def issue_refresh(self, user_id: int, jti: str) -> str:
        return self._mk("refresh", user_id, self.refresh_ttl, jti=jti)

    def _claims(self, token: str, ttype: str) -> dict[str, Any]:
        payload = self._issued.get(token)
        if payload is None or payload["type"] != ttype:
            raise TokenInvalidError("Token failed verification")
        if token in self._expired or payload["exp"] <= datetime.now(UTC):
            raise TokenExpiredError("Token has expired")
        return payload

    def verify_access(self, token: str) -> AccessClaims:
        c = self._claims(token, "access")
        return AccessClaims(user_id=c["sub"], email=c["email"], expires_at=c["exp"])

    def verify_refresh(self, token: str) -> RefreshClaims:
        c = self._claims(token, "refresh")
        return RefreshClaims(user_id=c["sub"], jti=c["jti"], expires_at=c["exp"])

    # ---------------------------- test controls ---------------------------

    def expire(self, token: str) -> None:
        """Make ``token`` fail verification as expired."""
        self._expired.add(token)

    def forge(self, token: str, **claims: Any) -> str:
        """Return a new token with ``token``'s claims overridden by ``claims``."""
        self._seq += 1
        forged = f"forged.{self._seq}"
        self._issued[forged] = {**self._issued[token], **claims}
        return forged
