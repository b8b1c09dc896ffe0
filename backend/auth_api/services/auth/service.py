# auth_api/services/auth/service.py
from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from collections.abc import Callable
from functools import lru_cache
from typing import NoReturn

from auth_api.services._shared.base import BaseService
from auth_api.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    SessionRevokedError,
    StoreUnavailableError,
    TokenExpiredError,
    TokenInvalidError,
)
from auth_api.services._shared.ports import (
    RefreshClaims,
    SessionRecord,
    SessionStore,
    TokenProvider,
)
from auth_api.services.auth.credentials import hash_password, verify_password
from auth_api.services.auth.dto import ClientMeta, LoginIn, LogoutIn, RefreshIn, TokenPairOut
from auth_api.services.identity.dto import UserPublicOut
from auth_api.services.identity.service import IdentityService, to_public

log = logging.getLogger(__name__)

DEFAULT_JTI_ATTEMPTS = 3


def new_jti() -> str:
    """Return a random 128-bit token identifier (32 hex chars)."""
    return secrets.token_hex(16)


def hash_refresh_token(token: str) -> str:
    """Return the SHA-256 hex digest stored in place of a refresh token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    # Verified against when the email is unknown so both paths cost the same
    return hash_password(secrets.token_urlsafe(16))


class AuthService(BaseService):
    """
    Session lifecycle service (login / refresh / logout).

    Tokens are issued and verified through a :class:`TokenProvider`; every
    refresh token is backed by exactly one row in the injected
    :class:`SessionStore`. Refresh tokens are single-use: a successful refresh
    revokes the presented token's session and creates a new one, so replaying
    a consumed token always fails with :class:`SessionRevokedError`.
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        session_store: SessionStore,
        identity: IdentityService | None = None,
        jti_factory: Callable[[], str] = new_jti,
        max_jti_attempts: int = DEFAULT_JTI_ATTEMPTS,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param token_provider: Adapter for issuing/verifying JWTs.
        :param session_store: Store for refresh-token sessions.
        :param identity: User lookups; defaults to :class:`IdentityService`.
        :param jti_factory: Source of fresh token identifiers.
        :param max_jti_attempts: Attempts before an identifier collision is
            reported as :class:`StoreUnavailableError`.
        """
        super().__init__()
        self.tokens = token_provider
        self.sessions = session_store
        self.identity = identity or IdentityService()
        self.jti_factory = jti_factory
        self.max_jti_attempts = max(1, max_jti_attempts)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn, meta: ClientMeta | None = None) -> TokenPairOut:
        """
        Authenticate a password credential and open a new session.

        :param dto: Login input.
        :param meta: Client metadata recorded on the session.
        :returns: User plus a fresh token pair.
        :raises InvalidCredentialsError: Unknown email, account without a
            password, or wrong password (indistinguishable).
        """
        with self.ro_uow() as uow:
            user = uow.users.get_by_email(dto.email)
            if user is None or not user.password_hash:
                # Same hashing cost whether the account is unknown or passwordless
                verify_password(dto.password, _dummy_hash())
                public = None
            elif verify_password(dto.password, user.password_hash):
                public = to_public(user)
            else:
                public = None

        if public is None:
            log.warning("auth.login.failed", extra={"reason": InvalidCredentialsError.reason})
            raise InvalidCredentialsError("Invalid credentials")

        pair = self.start_session(public, meta)
        log.info(
            "auth.login.succeeded",
            extra={"user_id": public.id, "session_id": pair.session_id},
        )
        return pair

    # ------------------------------------------------------------------ #
    # Session creation (shared by password and identity-provider logins)
    # ------------------------------------------------------------------ #

    def start_session(self, user: UserPublicOut, meta: ClientMeta | None = None) -> TokenPairOut:
        """
        Issue a token pair for ``user`` and persist its session.

        The session row is written before the tokens leave this method, so a
        refresh token never exists without its server-side record.

        :raises SigningUnavailableError: Tokens cannot be signed.
        :raises StoreUnavailableError: Store unreachable, or no unique
            identifier could be allocated.
        """
        meta = meta or ClientMeta()
        access = self.tokens.issue_access(user.id, user.email)

        for attempt in range(1, self.max_jti_attempts + 1):
            jti = self.jti_factory()
            refresh = self.tokens.issue_refresh(user.id, jti)
            try:
                record = self.sessions.create(
                    user_id=user.id,
                    jti=jti,
                    refresh_hash=hash_refresh_token(refresh),
                    ip=meta.ip,
                    user_agent=meta.user_agent,
                )
            except ConflictError:
                log.warning(
                    "auth.session.jti_collision attempt=%s",
                    attempt,
                    extra={"user_id": user.id},
                )
                continue
            return TokenPairOut(
                user=user,
                access_token=access,
                refresh_token=refresh,
                session_id=record.id,
            )

        raise StoreUnavailableError("Could not allocate a unique session identifier")

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate a refresh token and emit a new token pair.

        Security
        --------
        - The token must verify and its session must still be active.
        - The stored hash must match the presented token (constant time).
        - The old session is revoked with a conditional update; a caller that
          loses a concurrent race gets :class:`SessionRevokedError` and no new
          session is created.

        :raises InvalidTokenError: Bad/expired token, hash or owner mismatch.
        :raises SessionRevokedError: Session absent or already revoked.
        """
        token = dto.refresh_token
        claims = self._verify_refresh(token)

        session = self.sessions.find_by_jti(claims.jti)
        if session is None or not session.is_active:
            self._reject(SessionRevokedError, claims, session)

        if not hmac.compare_digest(session.refresh_hash, hash_refresh_token(token)):
            self._reject(InvalidTokenError, claims, session, detail="hash_mismatch")

        if session.user_id != claims.user_id:
            self._reject(InvalidTokenError, claims, session, detail="subject_mismatch")

        user = self.identity.get_user(session.user_id)
        if user is None:
            self._reject(InvalidTokenError, claims, session, detail="user_missing")

        if not self.sessions.revoke(session.id):
            # A concurrent refresh consumed the token first
            self._reject(SessionRevokedError, claims, session, detail="lost_race")

        pair = self.start_session(
            user, ClientMeta(ip=session.ip, user_agent=session.user_agent)
        )
        log.info(
            "auth.refresh.rotated",
            extra={"user_id": user.id, "session_id": pair.session_id},
        )
        return pair

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """
        Revoke the session behind the caller's refresh token.

        Idempotent: a missing, invalid or expired token, or a session that is
        already revoked or gone, is not an error.
        """
        if not dto.refresh_token:
            log.info("auth.logout", extra={"reason": "no_token"})
            return
        try:
            claims = self.tokens.verify_refresh(dto.refresh_token)
        except TokenInvalidError:
            log.info("auth.logout", extra={"reason": "invalid_token"})
            return

        session = self.sessions.find_by_jti(claims.jti)
        revoked = session is not None and self.sessions.revoke(session.id)
        log.info(
            "auth.logout",
            extra={
                "user_id": claims.user_id,
                "session_id": session.id if session else None,
                "reason": "revoked" if revoked else "already_inactive",
            },
        )

    # ------------------------------------------------------------------ #
    # Administration
    # ------------------------------------------------------------------ #

    def revoke_all_for_user(self, user_id: int) -> int:
        """Revoke every active session of ``user_id`` and return how many changed."""
        count = self.sessions.revoke_all_for_user(user_id)
        log.info("auth.sessions.revoked_all count=%s", count, extra={"user_id": user_id})
        return count

    def list_sessions(self, user_id: int) -> list[SessionRecord]:
        """Return the active sessions of ``user_id``."""
        return self.sessions.list_active_for_user(user_id)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _verify_refresh(self, token: str) -> RefreshClaims:
        try:
            return self.tokens.verify_refresh(token)
        except TokenExpiredError as exc:
            log.warning("auth.refresh.failed", extra={"reason": "expired"})
            raise InvalidTokenError("Invalid token") from exc
        except TokenInvalidError as exc:
            log.warning("auth.refresh.failed", extra={"reason": InvalidTokenError.reason})
            raise InvalidTokenError("Invalid token") from exc

    @staticmethod
    def _reject(
        error: type[InvalidTokenError] | type[SessionRevokedError],
        claims: RefreshClaims,
        session: SessionRecord | None,
        *,
        detail: str | None = None,
    ) -> NoReturn:
        log.warning(
            "auth.refresh.failed",
            extra={
                "reason": detail or error.reason,
                "user_id": claims.user_id,
                "session_id": session.id if session else None,
            },
        )
        raise error("Invalid token" if error is InvalidTokenError else "Session revoked")
