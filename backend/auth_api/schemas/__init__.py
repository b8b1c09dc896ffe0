"""Marshmallow schemas for request validation and response serialization."""

from auth_api.schemas.auth import LoginSchema, RegisterSchema, SessionSchema, UserSchema

__all__ = ["LoginSchema", "RegisterSchema", "SessionSchema", "UserSchema"]
