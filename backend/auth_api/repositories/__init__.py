"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from auth_api.repositories.base import BaseRepository
from auth_api.repositories.session import AuthSessionRepository
from auth_api.repositories.user import UserRepository

__all__ = [
    "AuthSessionRepository",
    "BaseRepository",
    "UserRepository",
]
