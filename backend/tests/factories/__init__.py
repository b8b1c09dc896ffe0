"""Factory Boy base bound to the per-test session from ``conftest``."""

from __future__ import annotations

import factory


class SQLAlchemySession:
    """Holder for the session the ``_factories_session`` fixture installs."""

    _session = None

    @classmethod
    def set(cls, session):
        cls._session = session

    @classmethod
    def get(cls):
        if cls._session is None:
            raise RuntimeError("No factory session installed; request the 'session' fixture.")
        return cls._session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Rows are flushed, not committed; tests commit when a request must see them."""

    class Meta:
        abstract = True
        sqlalchemy_session_factory = SQLAlchemySession.get
        sqlalchemy_session_persistence = "flush"
