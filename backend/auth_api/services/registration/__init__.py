from auth_api.services.registration.dto import UserRegistrationIn
from auth_api.services.registration.service import UserRegistrationService

__all__ = ["UserRegistrationIn", "UserRegistrationService"]
