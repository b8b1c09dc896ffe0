"""``users`` table."""

from __future__ import annotations

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates

from auth_api.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    An account that sessions are issued for.

    ``email`` is unique and always stored trimmed and lower-cased.
    ``password_hash`` is ``None`` for accounts created by Google sign-in;
    those cannot use the password login.
    """

    __tablename__ = "users"
    __repr_attrs__ = ("email",)
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    email: Mapped[str] = mapped_column(String(254), nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @validates("email")
    def _clean_email(self, key: str, value: str) -> str:
        """Lower-case and trim; reject values without ``local@domain.tld`` shape."""
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Email is required.")
        email = value.strip().lower()
        local, at, domain = email.rpartition("@")
        if not (local and at and "." in domain):
            raise ValueError("Email format looks invalid.")
        return email

    @validates("name")
    def _clean_name(self, key: str, value: str | None) -> str | None:
        return (value or "").strip() or None
