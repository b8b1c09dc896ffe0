"""
Units of work over the Flask-SQLAlchemy scoped session.

:class:`SQLAlchemyUnitOfWork` wraps one read-write transaction (login session
creation, revocation, registration). :class:`SQLAlchemyReadOnlyUnitOfWork`
serves lookups: it never commits and refuses ORM writes while open.
"""

from __future__ import annotations

import logging
from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from auth_api.core.extensions import db
from auth_api.repositories import AuthSessionRepository, UserRepository
from auth_api.uow.base import UnitOfWork

log = logging.getLogger(__name__)

READONLY_FLAG = "readonly"


class _Repositories:
    """Bind the auth repositories to one session."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=session)
        self.auth_sessions = AuthSessionRepository(session=session)


class SQLAlchemyUnitOfWork(_Repositories, UnitOfWork):
    """Read-write transaction; commits when the ``with`` block succeeds."""

    def __init__(self) -> None:
        super().__init__(db.session)

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(_Repositories, UnitOfWork):
    """
    Lookup-only transaction.

    When the session is idle the unit owns a fresh transaction and, on
    PostgreSQL/MySQL, marks it ``READ ONLY`` with the requested isolation
    level. When a transaction is already open (earlier statement in the same
    request, test fixtures) it joins it and leaves it untouched on exit.
    Either way ORM flushes are rejected while the block runs.

    :param isolation_level: ``SET TRANSACTION ISOLATION LEVEL`` value, or
        ``None`` for the connection default.
    :param enforce_db_readonly: Issue ``SET TRANSACTION READ ONLY`` when the
        dialect supports it.
    """

    _SET_TRANSACTION_DIALECTS = frozenset({"postgresql", "mysql", "mariadb"})

    def __init__(
        self,
        *,
        isolation_level: str | None = "READ COMMITTED",
        enforce_db_readonly: bool = True,
    ) -> None:
        super().__init__(db.session)
        self.isolation_level = isolation_level
        self.enforce_db_readonly = enforce_db_readonly
        self._owned: SessionTransaction | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._owned = self._begin_if_idle()
        self.session.info[READONLY_FLAG] = True
        if self._owned is not None:
            self._apply_transaction_modes()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.session.info.pop(READONLY_FLAG, None)
        owned, self._owned = self._owned, None
        if owned is None:
            return
        with suppress(SQLAlchemyError):
            self.session.rollback()
        owned.__exit__(exc_type, exc, tb)

    def commit(self) -> None:
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    # ------------------------------------------------------------------ #

    def _begin_if_idle(self) -> SessionTransaction | None:
        try:
            txn = self.session.begin()
        except InvalidRequestError:
            return None
        txn.__enter__()
        return txn

    def _apply_transaction_modes(self) -> None:
        if self.session.get_bind().dialect.name not in self._SET_TRANSACTION_DIALECTS:
            return
        try:
            if self.isolation_level:
                level = self.isolation_level.upper().strip()
                self.session.execute(text(f"SET TRANSACTION ISOLATION LEVEL {level}"))
            if self.enforce_db_readonly:
                self.session.execute(text("SET TRANSACTION READ ONLY"))
        except SQLAlchemyError:
            log.warning("uow.readonly.set_transaction_failed", exc_info=True)


@event.listens_for(Session, "before_flush")
def _reject_readonly_flush(session, flush_context, instances) -> None:
    if session.info.get(READONLY_FLAG) and (session.new or session.dirty or session.deleted):
        raise RuntimeError("Read-only UnitOfWork: ORM flush blocked.")
