"""Transaction boundary contract used by the services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from auth_api.repositories import AuthSessionRepository, UserRepository


class UnitOfWork(ABC):
    """
    One transaction spanning the ``users`` and ``auth_sessions`` repositories.

    Used as a context manager: leaving the block normally commits, leaving it
    with an exception rolls back and re-raises. Subclasses supply
    :meth:`commit` and :meth:`rollback`; read-only variants override
    :meth:`__exit__`.
    """

    users: UserRepository
    auth_sessions: AuthSessionRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except Exception:
            self.rollback()
            raise

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
