"""
OAuthLoginService
=================

Runs the identity-provider login as an explicit, short-lived flow object:

``INITIATED`` -> ``COMPLETED`` (token pair issued) or
``INITIATED`` -> ``FAILED`` (terminal, carries the :class:`ProviderError`).

No server-side state is kept between the two legs. The ``state`` parameter
sent to the provider is a signed, time-limited envelope around a random nonce;
the same nonce travels in a short-lived HTTP-only cookie and both must match
on callback.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from dataclasses import dataclass
from enum import Enum

from itsdangerous import BadSignature, URLSafeTimedSerializer

from auth_api.services._shared.errors import (
    InfrastructureError,
    InvalidInputError,
    ProviderError,
)
from auth_api.services.auth.dto import ClientMeta, TokenPairOut
from auth_api.services.auth.service import AuthService
from auth_api.services.identity.dto import ExternalIdentityIn
from auth_api.services.identity.service import IdentityService
from auth_api.services.identity_provider.google import GoogleOAuthClient

log = logging.getLogger(__name__)

STATE_SALT = "oauth-state"


class FlowState(Enum):
    INITIATED = "initiated"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(slots=True)
class OAuthFlow:
    """
    One identity-provider login attempt.

    :ivar state: Current state; ``COMPLETED`` and ``FAILED`` are terminal.
    :ivar nonce: Value bound to the browser through the state cookie.
    :ivar authorization_url: Consent URL (set by :meth:`OAuthLoginService.initiate`).
    :ivar tokens: Issued pair once ``COMPLETED``.
    :ivar error: Failure once ``FAILED``.
    """

    state: FlowState = FlowState.INITIATED
    nonce: str | None = None
    authorization_url: str | None = None
    tokens: TokenPairOut | None = None
    error: ProviderError | None = None

    def complete(self, tokens: TokenPairOut) -> OAuthFlow:
        self._require_initiated()
        self.state = FlowState.COMPLETED
        self.tokens = tokens
        return self

    def fail(self, error: ProviderError) -> OAuthFlow:
        self._require_initiated()
        self.state = FlowState.FAILED
        self.error = error
        return self

    def _require_initiated(self) -> None:
        if self.state is not FlowState.INITIATED:
            raise RuntimeError(f"OAuth flow already {self.state.value}")


class OAuthLoginService:
    """Bridge between the identity provider and the session lifecycle."""

    def __init__(
        self,
        *,
        client: GoogleOAuthClient,
        secret_key: str,
        auth: AuthService,
        identity: IdentityService | None = None,
        state_max_age: int = 600,
    ) -> None:
        self.client = client
        self.auth = auth
        self.identity = identity or IdentityService()
        self.state_max_age = state_max_age
        self._serializer = URLSafeTimedSerializer(secret_key, salt=STATE_SALT)

    def initiate(self) -> OAuthFlow:
        """
        Start a flow: mint a nonce and build the consent URL.

        :raises ProviderError: When the client is not configured.
        """
        nonce = secrets.token_urlsafe(24)
        state = self._serializer.dumps({"n": nonce})
        flow = OAuthFlow(nonce=nonce, authorization_url=self.client.authorization_url(state))
        log.info("auth.oauth.initiated", extra={"provider": "google"})
        return flow

    def callback(
        self,
        *,
        state: str | None,
        code: str | None,
        error: str | None,
        nonce_cookie: str | None,
        meta: ClientMeta | None = None,
    ) -> OAuthFlow:
        """
        Finish a flow. Never raises for provider-side problems; the returned
        flow is either ``COMPLETED`` or ``FAILED``.
        """
        flow = OAuthFlow(nonce=nonce_cookie)
        try:
            self._check_state(state, nonce_cookie)
            if error:
                raise ProviderError(f"Provider returned error: {error}", reason="denied")
            if not code:
                raise ProviderError("Missing authorization code", reason="no_code")

            identity = self.client.fetch_userinfo(self.client.exchange_code(code))
            if not identity.email_verified:
                raise ProviderError("Provider email is not verified", reason="unverified_email")

            user = self.identity.resolve_external(
                ExternalIdentityIn(email=identity.email, name=identity.name)
            )
            tokens = self.auth.start_session(user, meta)
        except ProviderError as exc:
            log.warning("auth.oauth.failed", extra={"provider": "google", "reason": exc.reason})
            return flow.fail(exc)
        except InvalidInputError as exc:
            log.warning(
                "auth.oauth.failed", extra={"provider": "google", "reason": "invalid_identity"}
            )
            return flow.fail(ProviderError(str(exc), reason="invalid_identity"))
        except InfrastructureError as exc:
            log.error(
                "auth.oauth.failed",
                exc_info=True,
                extra={"provider": "google", "reason": "unavailable"},
            )
            return flow.fail(ProviderError(str(exc), reason="unavailable"))

        log.info(
            "auth.oauth.completed",
            extra={"provider": "google", "user_id": user.id, "session_id": tokens.session_id},
        )
        return flow.complete(tokens)

    def _check_state(self, state: str | None, nonce_cookie: str | None) -> None:
        if not state or not nonce_cookie:
            raise ProviderError("Missing OAuth state", reason="bad_state")
        try:
            payload = self._serializer.loads(state, max_age=self.state_max_age)
        except BadSignature as exc:
            raise ProviderError("Invalid or expired OAuth state", reason="bad_state") from exc
        nonce = payload.get("n") if isinstance(payload, dict) else None
        if not isinstance(nonce, str) or not hmac.compare_digest(nonce, nonce_cookie):
            raise ProviderError("OAuth state does not match", reason="bad_state")
