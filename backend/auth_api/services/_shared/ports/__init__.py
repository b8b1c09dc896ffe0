"""
auth_api.services._shared.ports
===============================

*Ports* (hexagonal interfaces) for the authentication core.

- :mod:`token_provider`:
    :class:`~.TokenProvider` with the :class:`~.AccessClaims` and
    :class:`~.RefreshClaims` read-models, plus the
    :class:`~.StubTokenProvider` double.

- :mod:`session_store`:
    :class:`~.SessionStore`, :class:`~.SessionRecord` and the in-memory
    double :class:`~.InMemorySessionStore`.

Concrete adapters (SQLAlchemy, Redis, Flask-JWT-Extended) live under
``auth_api.infra``.
"""

from __future__ import annotations

from .session_store import InMemorySessionStore, SessionRecord, SessionStore
from .token_provider import AccessClaims, RefreshClaims, StubTokenProvider, TokenProvider

__all__ = [
    "AccessClaims",
    "InMemorySessionStore",
    "RefreshClaims",
    "SessionRecord",
    "SessionStore",
    "StubTokenProvider",
    "TokenProvider",
]
