from auth_api.services.identity.dto import ExternalIdentityIn, UserPublicOut
from auth_api.services.identity.service import IdentityService, to_public

__all__ = ["ExternalIdentityIn", "IdentityService", "UserPublicOut", "to_public"]
