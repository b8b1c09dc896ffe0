"""Persisted refresh-token sessions."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from auth_api.core.extensions import db
from auth_api.services._shared.ports.session_store import SessionRecord

from .base import PKMixin, ReprMixin, utcnow


class AuthSession(PKMixin, ReprMixin, db.Model):
    """
    One row per issued refresh token.

    Fields
    ------
    user_id : int
        Owner of the session.
    jti : str
        Unique identifier embedded in the refresh token.
    refresh_hash : str
        SHA-256 hex digest of the full refresh token; the token itself is
        never stored.
    ip / user_agent : str | None
        Client metadata captured when the session was first established.
        Rotated sessions inherit them.
    created_at : datetime
        Issue time.
    revoked_at : datetime | None
        Set exactly once; a revoked row is never reactivated.
    """

    __tablename__ = "auth_sessions"
    __repr_attrs__ = ("user_id", "revoked_at")

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    jti: Mapped[str] = mapped_column(String(64), nullable=False)
    refresh_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    ip: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("jti", name="uq_auth_sessions_jti"),
        Index("ix_auth_sessions_user_id", "user_id"),
    )

    def to_record(self) -> SessionRecord:
        """Return an immutable snapshot detached from the ORM session."""
        return SessionRecord(
            id=self.id,
            user_id=self.user_id,
            jti=self.jti,
            refresh_hash=self.refresh_hash,
            ip=self.ip,
            user_agent=self.user_agent,
            created_at=self.created_at,
            revoked_at=self.revoked_at,
        )
