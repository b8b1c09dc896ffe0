from auth_api.services.identity_provider.flow import FlowState, OAuthFlow, OAuthLoginService
from auth_api.services.identity_provider.google import (
    GoogleOAuthClient,
    GoogleOAuthSettings,
    ProviderIdentity,
)

__all__ = [
    "FlowState",
    "GoogleOAuthClient",
    "GoogleOAuthSettings",
    "OAuthFlow",
    "OAuthLoginService",
    "ProviderIdentity",
]
