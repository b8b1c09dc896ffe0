"""Repository for :class:`~auth_api.models.session.AuthSession` rows."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update

from auth_api.models.base import utcnow
from auth_api.models.session import AuthSession
from auth_api.repositories.base import BaseRepository


class AuthSessionRepository(BaseRepository[AuthSession]):
    """Persistence-only repository for refresh-token sessions.

    Revocation is expressed as conditional ``UPDATE`` statements rather than
    read-modify-write on loaded objects, so the database decides which of two
    concurrent callers performs the transition.
    """

    model = AuthSession

    def get_by_jti(self, jti: str) -> AuthSession | None:
        """Fetch the session bound to ``jti``, active or revoked."""
        stmt = select(AuthSession).where(AuthSession.jti == jti)
        return self.session.execute(stmt).scalars().first()

    def mark_revoked(self, session_id: int, *, at: datetime | None = None) -> bool:
        """Revoke one session if it is still active.

        :param session_id: Primary key of the session.
        :param at: Revocation timestamp; defaults to now (UTC).
        :returns: ``True`` when exactly this call flipped the row.
        :rtype: bool
        """
        stmt = (
            update(AuthSession)
            .where(AuthSession.id == session_id, AuthSession.revoked_at.is_(None))
            .values(revoked_at=at or utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def revoke_all_for_user(self, user_id: int, *, at: datetime | None = None) -> int:
        """Revoke every active session of a user and return the row count."""
        stmt = (
            update(AuthSession)
            .where(AuthSession.user_id == user_id, AuthSession.revoked_at.is_(None))
            .values(revoked_at=at or utcnow())
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)

    def list_active_for_user(self, user_id: int) -> list[AuthSession]:
        """Return active sessions of ``user_id`` ordered by id."""
        stmt = (
            select(AuthSession)
            .where(AuthSession.user_id == user_id, AuthSession.revoked_at.is_(None))
            .order_by(AuthSession.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())
