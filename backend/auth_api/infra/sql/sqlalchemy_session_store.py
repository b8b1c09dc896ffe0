"""SQLAlchemy-backed :class:`~auth_api.services._shared.ports.SessionStore`."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from auth_api.models.session import AuthSession
from auth_api.services._shared.errors import ConflictError, StoreUnavailableError, violates
from auth_api.services._shared.ports import SessionRecord, SessionStore
from auth_api.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT = (OperationalError, PoolTimeoutError)


@dataclass(slots=True)
class SQLAlchemySessionStore(SessionStore):
    """
    Session store persisting to the ``auth_sessions`` table.

    Every operation runs in its own Unit of Work so a committed revocation is
    visible to concurrent requests immediately.

    :param retry_attempts: Attempts for idempotent operations on transient
        database errors (connection drops, pool or lock timeouts).
    :param retry_backoff: Initial backoff in seconds, doubled per attempt.
    """

    retry_attempts: int = 3
    retry_backoff: float = 0.05

    # ------------------------------ helpers -------------------------------

    def _with_retry(self, op: str, fn: Callable[[], T]) -> T:
        attempts = max(1, self.retry_attempts)
        delay = self.retry_backoff
        for attempt in range(1, attempts + 1):
            try:
                return fn()
            except _TRANSIENT as exc:
                if attempt == attempts:
                    raise StoreUnavailableError(f"Session store unavailable during {op}") from exc
                log.warning(
                    "session_store.retry op=%s attempt=%s", op, attempt, extra={"reason": str(exc)}
                )
                if delay > 0:
                    time.sleep(delay)
                    delay *= 2
        raise StoreUnavailableError(f"Session store unavailable during {op}")  # pragma: no cover

    # -------------------------------- API ---------------------------------

    def create(
        self,
        *,
        user_id: int,
        jti: str,
        refresh_hash: str,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> SessionRecord:
        if not jti or not refresh_hash:
            raise ValueError("A session requires both a jti and a refresh hash.")
        try:
            with SQLAlchemyUnitOfWork() as uow:
                row = uow.auth_sessions.add(
                    AuthSession(
                        user_id=user_id,
                        jti=jti,
                        refresh_hash=refresh_hash,
                        ip=ip,
                        user_agent=user_agent,
                    )
                )
                record = row.to_record()
        except IntegrityError as exc:
            if violates(exc, "uq_auth_sessions_jti"):
                raise ConflictError("Session", "jti already exists") from exc
            raise
        except _TRANSIENT as exc:
            # Not retried: the insert may have landed before the error surfaced
            raise StoreUnavailableError("Session store unavailable during create") from exc
        return record

    def find_by_jti(self, jti: str) -> SessionRecord | None:
        def _find() -> SessionRecord | None:
            with SQLAlchemyReadOnlyUnitOfWork(isolation_level=None) as uow:
                row = uow.auth_sessions.get_by_jti(jti)
                return row.to_record() if row is not None else None

        return self._with_retry("find_by_jti", _find)

    def revoke(self, session_id: int) -> bool:
        def _revoke() -> bool:
            with SQLAlchemyUnitOfWork() as uow:
                return uow.auth_sessions.mark_revoked(session_id)

        return self._with_retry("revoke", _revoke)

    def revoke_all_for_user(self, user_id: int) -> int:
        def _revoke_all() -> int:
            with SQLAlchemyUnitOfWork() as uow:
                return uow.auth_sessions.revoke_all_for_user(user_id)

        return self._with_retry("revoke_all_for_user", _revoke_all)

    def list_active_for_user(self, user_id: int) -> list[SessionRecord]:
        def _list() -> list[SessionRecord]:
            with SQLAlchemyReadOnlyUnitOfWork(isolation_level=None) as uow:
                return [row.to_record() for row in uow.auth_sessions.list_active_for_user(user_id)]

        return self._with_retry("list_active_for_user", _list)
