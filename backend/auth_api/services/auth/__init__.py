from auth_api.services.auth.credentials import hash_password, verify_password
from auth_api.services.auth.dto import ClientMeta, LoginIn, LogoutIn, RefreshIn, TokenPairOut
from auth_api.services.auth.service import AuthService, hash_refresh_token, new_jti

__all__ = [
    "AuthService",
    "ClientMeta",
    "LoginIn",
    "LogoutIn",
    "RefreshIn",
    "TokenPairOut",
    "hash_password",
    "hash_refresh_token",
    "new_jti",
    "verify_password",
]
