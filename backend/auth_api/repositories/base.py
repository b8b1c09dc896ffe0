"""Shared base for the ``users`` and ``auth_sessions`` repositories.

A repository only reads and writes rows. Transactions belong to the unit of
work that owns the session; repositories flush but never commit.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy.orm import Session

from auth_api.core.extensions import db

ModelT = TypeVar("ModelT")


class BaseRepository(Generic[ModelT]):
    """Row access for one mapped class, set as :attr:`model` by subclasses.

    :param session: Session of the enclosing unit of work. Without one the
        Flask-SQLAlchemy scoped session is used.
    """

    model: type[ModelT]

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    def add(self, instance: ModelT) -> ModelT:
        """Insert ``instance`` and flush so its id and unique constraints are checked now."""
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, pk: Any) -> ModelT | None:
        return self.session.get(self.model, pk)

    def flush(self) -> None:
        self.session.flush()
