from auth_api.models.session import AuthSession
from auth_api.models.user import User

__all__ = ["AuthSession", "User"]
