"""Column mixins shared by the ``users`` and ``auth_sessions`` models."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware "now" used for every timestamp written by the service."""
    return datetime.now(UTC)


class PKMixin:
    """Integer surrogate key ``id``."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


class TimestampMixin:
    """
    ``created_at`` / ``updated_at`` for mutable records.

    Values are set in Python so SQLite and PostgreSQL store the same aware
    timestamps; the server defaults only cover rows inserted outside the ORM.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )


class ReprMixin:
    """``<Model id=.. attr=..>`` built from :attr:`__repr_attrs__` only.

    Secrets (password and refresh hashes) must never be listed there.
    """

    __repr_attrs__ = ()

    def __repr__(self) -> str:
        parts = [f"id={getattr(self, 'id', None)}"]
        parts += [f"{name}={getattr(self, name, None)!r}" for name in self.__repr_attrs__]
        return f"<{type(self).__name__} {' '.join(parts)}>"
