"""Google OAuth 2.0 / OpenID Connect client (authorization-code flow)."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import requests

from auth_api.services._shared.errors import ProviderError

log = logging.getLogger(__name__)

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ("openid", "email", "profile")


@dataclass(frozen=True, slots=True)
class GoogleOAuthSettings:
    """
    OAuth client registration.

    :param client_id: Google OAuth client id.
    :param client_secret: Google OAuth client secret.
    :param redirect_uri: Callback URL registered with Google.
    :param timeout: Per-request timeout in seconds for provider calls.
    """

    client_id: str
    client_secret: str
    redirect_uri: str
    timeout: float = 10.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> GoogleOAuthSettings:
        return cls(
            client_id=config.get("GOOGLE_CLIENT_ID", ""),
            client_secret=config.get("GOOGLE_CLIENT_SECRET", ""),
            redirect_uri=config.get("GOOGLE_REDIRECT_URI", ""),
            timeout=float(config.get("OAUTH_HTTP_TIMEOUT_SECONDS", 10.0)),
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret and self.redirect_uri)


@dataclass(frozen=True, slots=True)
class ProviderIdentity:
    """Identity claims returned by the userinfo endpoint."""

    email: str
    name: str | None
    email_verified: bool


class GoogleOAuthClient:
    """
    Thin HTTP client for the three Google endpoints used by the login flow.

    Every transport failure, non-2xx status or unusable payload is raised as
    :class:`ProviderError`.
    """

    def __init__(
        self, settings: GoogleOAuthSettings, *, http: requests.Session | None = None
    ) -> None:
        self.settings = settings
        self.http = http or requests.Session()

    def authorization_url(self, state: str) -> str:
        """Return the consent-screen URL carrying ``state``."""
        if not self.settings.configured:
            raise ProviderError("Google OAuth is not configured", reason="not_configured")
        query = urlencode(
            {
                "client_id": self.settings.client_id,
                "redirect_uri": self.settings.redirect_uri,
                "response_type": "code",
                "scope": " ".join(SCOPES),
                "state": state,
                "access_type": "online",
                "prompt": "select_account",
            }
        )
        return f"{AUTH_URL}?{query}"

    def exchange_code(self, code: str) -> str:
        """Exchange an authorization code for a provider access token."""
        payload = self._json(
            "token",
            lambda: self.http.post(
                TOKEN_URL,
                data={
                    "code": code,
                    "client_id": self.settings.client_id,
                    "client_secret": self.settings.client_secret,
                    "redirect_uri": self.settings.redirect_uri,
                    "grant_type": "authorization_code",
                },
                headers={"Accept": "application/json"},
                timeout=self.settings.timeout,
            ),
        )
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise ProviderError("Token response lacks access_token", reason="bad_token_response")
        return access_token

    def fetch_userinfo(self, access_token: str) -> ProviderIdentity:
        """Fetch the signed-in user's email and profile."""
        payload = self._json(
            "userinfo",
            lambda: self.http.get(
                USERINFO_URL,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.settings.timeout,
            ),
        )
        email = payload.get("email")
        if not isinstance(email, str) or not email.strip():
            raise ProviderError("Userinfo lacks an email", reason="no_email")
        verified = payload.get("email_verified", payload.get("verified_email", False))
        name = payload.get("name")
        return ProviderIdentity(
            email=email.strip().lower(),
            name=name if isinstance(name, str) and name.strip() else None,
            email_verified=verified is True or str(verified).lower() == "true",
        )

    @staticmethod
    def _json(endpoint: str, send) -> dict[str, Any]:
        try:
            resp = send()
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise ProviderError(f"Google {endpoint} request failed", reason="http") from exc
        except ValueError as exc:
            raise ProviderError(f"Google {endpoint} returned invalid JSON", reason="http") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"Google {endpoint} returned unexpected JSON", reason="http")
        return data
