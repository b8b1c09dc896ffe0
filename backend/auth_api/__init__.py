"""Auth API: credential and Google sign-in with rotating refresh sessions.

``create_app`` is the entry point for Gunicorn, ``flask --app auth_api`` and
the test suite.
"""

from __future__ import annotations

from .factory import create_app

__all__ = ["create_app"]
