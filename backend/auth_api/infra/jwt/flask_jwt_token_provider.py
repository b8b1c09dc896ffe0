# auth_api/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import ExpiredSignatureError, PyJWTError

from auth_api.services._shared.errors import (
    SigningUnavailableError,
    TokenExpiredError,
    TokenInvalidError,
)
from auth_api.services._shared.ports import AccessClaims, RefreshClaims, TokenProvider

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    :param access_ttl: Lifetime of access tokens.
    :param refresh_ttl: Lifetime of refresh tokens.

    .. note::
       Requires an active Flask app context with proper JWT settings
       (``JWT_SECRET_KEY``, ``JWT_ALGORITHM``).
    """

    access_ttl: timedelta = field(default_factory=lambda: timedelta(minutes=15))
    refresh_ttl: timedelta = field(default_factory=lambda: timedelta(days=30))

    # ------------------------------ issue ---------------------------------

    def issue_access(self, user_id: int, email: str) -> str:
        try:
            return cast(
                str,
                create_access_token(
                    identity=str(user_id),
                    additional_claims={"email": email},
                    expires_delta=self.access_ttl,
                ),
            )
        except (RuntimeError, PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            raise SigningUnavailableError("Unable to sign access token") from exc

    def issue_refresh(self, user_id: int, jti: str) -> str:
        # The jti comes from the lifecycle manager and overrides the library default
        try:
            token = cast(
                str,
                create_refresh_token(
                    identity=str(user_id),
                    additional_claims={"jti": jti},
                    expires_delta=self.refresh_ttl,
                ),
            )
        except (RuntimeError, PyJWTError, NotImplementedError, TypeError, ValueError) as exc:
            raise SigningUnavailableError("Unable to sign refresh token") from exc
        return token

    # ------------------------------ verify --------------------------------

    def verify_access(self, token: str) -> AccessClaims:
        claims = self._decode(token, ACCESS_TOKEN_TYPE)
        email = claims.get("email")
        if not isinstance(email, str):
            raise TokenInvalidError("Access token lacks an email claim")
        return AccessClaims(
            user_id=self._subject(claims),
            email=email,
            expires_at=self._expires_at(claims),
        )

    def verify_refresh(self, token: str) -> RefreshClaims:
        claims = self._decode(token, REFRESH_TOKEN_TYPE)
        jti = claims.get("jti")
        if not isinstance(jti, str) or not jti:
            raise TokenInvalidError("Refresh token lacks a jti claim")
        return RefreshClaims(
            user_id=self._subject(claims),
            jti=jti,
            expires_at=self._expires_at(claims),
        )

    # ------------------------------ helpers -------------------------------

    @staticmethod
    def _decode(token: str, expected_type: str) -> dict[str, Any]:
        if not isinstance(token, str) or not token:
            raise TokenInvalidError("Token is missing")
        try:
            claims = cast(dict[str, Any], decode_token(token))
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired") from exc
        except (PyJWTError, JWTExtendedException) as exc:
            raise TokenInvalidError("Token failed verification") from exc
        if claims.get("type") != expected_type:
            raise TokenInvalidError(f"Expected a {expected_type} token")
        return claims

    @staticmethod
    def _subject(claims: dict[str, Any]) -> int:
        subject = claims.get("sub")
        if isinstance(subject, int):
            return subject
        if isinstance(subject, str) and subject.isdigit():
            return int(subject)
        raise TokenInvalidError("Invalid token subject")

    @staticmethod
    def _expires_at(claims: dict[str, Any]) -> datetime:
        return datetime.fromtimestamp(int(claims["exp"]), tz=UTC)
