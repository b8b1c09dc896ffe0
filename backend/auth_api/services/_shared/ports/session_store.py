from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from auth_api.services._shared.errors import ConflictError


@dataclass(frozen=True, slots=True)
class SessionRecord:
    """
    Read-model for one refresh-token session.

    :ivar id: Store-assigned identifier.
    :ivar user_id: Owner user id.
    :ivar jti: Token identifier embedded in the refresh token.
    :ivar refresh_hash: SHA-256 hex digest of the refresh token.
    :ivar ip: Client address captured at login.
    :ivar user_agent: Client user agent captured at login.
    :ivar created_at: Issue time.
    :ivar revoked_at: Revocation time, ``None`` while active.
    """

    id: int
    user_id: int
    jti: str
    refresh_hash: str
    ip: str | None
    user_agent: str | None
    created_at: datetime
    revoked_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.revoked_at is None


class SessionStore(Protocol):
    """
    Durable store of refresh-token sessions.

    Sessions move from active to revoked exactly once and are never
    reactivated, deleted, or have their refresh hash rewritten.

    Failures to reach the backing store raise
    :class:`~auth_api.services._shared.errors.StoreUnavailableError`.
    """

    def create(
        self,
        *,
        user_id: int,
        jti: str,
        refresh_hash: str,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> SessionRecord:
        """
        Persist a new active session.

        :raises ConflictError: When ``jti`` is already taken.
        """
        ...

    def find_by_jti(self, jti: str) -> SessionRecord | None:
        """Return the session bound to ``jti`` (active or revoked)."""
        ...

    def revoke(self, session_id: int) -> bool:
        """
        Set the revocation timestamp if the session is still active.

        Idempotent. Returns ``True`` only for the call that performed the
        active to revoked transition; concurrent callers cannot both win.
        """
        ...

    def revoke_all_for_user(self, user_id: int) -> int:
        """Revoke every active session of ``user_id``; return how many changed."""
        ...

    def list_active_for_user(self, user_id: int) -> list[SessionRecord]:
        """Return active sessions of ``user_id``, oldest first."""
        ...


class InMemorySessionStore(SessionStore):
    """
    Process-local session store for unit tests.

    .. note::
       A single lock makes every operation atomic, matching the conditional
       update the real stores perform.
    """

    def __init__(self) -> None:
        self._by_id: dict[int, SessionRecord] = {}
        self._id_by_jti: dict[str, int] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def create(
        self,
        *,
        user_id: int,
        jti: str,
        refresh_hash: str,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> SessionRecord:
        with self._lock:
            if jti in self._id_by_jti:
                raise ConflictError("Session", "jti already exists")
            self._seq += 1
            record = SessionRecord(
                id=self._seq,
                user_id=user_id,
                jti=jti,
                refresh_hash=refresh_hash,
                ip=ip,
                user_agent=user_agent,
                created_at=datetime.now(UTC),
            )
            self._by_id[record.id] = record
            self._id_by_jti[jti] = record.id
            return record

    def find_by_jti(self, jti: str) -> SessionRecord | None:
        with self._lock:
            session_id = self._id_by_jti.get(jti)
            return self._by_id.get(session_id) if session_id is not None else None

    def revoke(self, session_id: int) -> bool:
        with self._lock:
            record = self._by_id.get(session_id)
            if record is None or not record.is_active:
                return False
            self._by_id[session_id] = replace(record, revoked_at=datetime.now(UTC))
            return True

    def revoke_all_for_user(self, user_id: int) -> int:
        with self._lock:
            now = datetime.now(UTC)
            changed = 0
            for session_id, record in self._by_id.items():
                if record.user_id == user_id and record.is_active:
                    self._by_id[session_id] = replace(record, revoked_at=now)
                    changed += 1
            return changed

    def list_active_for_user(self, user_id: int) -> list[SessionRecord]:
        with self._lock:
            return [
                r for r in sorted(self._by_id.values(), key=lambda r: r.id)
                if r.user_id == user_id and r.is_active
            ]

    def all(self) -> list[SessionRecord]:
        """Return every stored session, including revoked ones."""
        with self._lock:
            return sorted(self._by_id.values(), key=lambda r: r.id)
