"""Lookups over the ``users`` table."""

from __future__ import annotations

from sqlalchemy import exists, select

from auth_api.models.user import User
from auth_api.repositories.base import BaseRepository


def _normalized(email: str) -> str:
    return email.strip().lower()


class UserRepository(BaseRepository[User]):
    """User rows keyed by normalized email.

    Emails are stored lower-cased, so lookups normalize their argument the
    same way before comparing.
    """

    model = User

    def get_by_email(self, email: str) -> User | None:
        """
        :param email: Address as typed by the client.
        :returns: The matching user, or ``None``.
        """
        stmt = select(User).where(User.email == _normalized(email))
        return self.session.scalars(stmt).first()

    def exists_by_email(self, email: str) -> bool:
        stmt = select(exists().where(User.email == _normalized(email)))
        return bool(self.session.scalar(stmt))
