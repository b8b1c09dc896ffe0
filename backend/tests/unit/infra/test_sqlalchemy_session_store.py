from __future__ import annotations

import pytest
from auth_api.infra.sql import sqlalchemy_session_store as module
from auth_api.infra.sql.sqlalchemy_session_store import SQLAlchemySessionStore
from auth_api.models.session import AuthSession
from auth_api.services._shared.errors import StoreUnavailableError
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from tests.factories.user import AuthSessionFactory


@pytest.fixture()
def flaky(monkeypatch):
    """Make the read-write unit of work fail on enter for the first N uses."""
    real_cls = module.SQLAlchemyUnitOfWork

    class _Flaky:
        calls = 0
        failures = 0

        def __init__(self, *args, **kwargs) -> None:
            self._real = real_cls()

        def __enter__(self):
            type(self).calls += 1
            if type(self).calls <= type(self).failures:
                raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))
            return self._real.__enter__()

        def __exit__(self, *exc):
            return self._real.__exit__(*exc)

    monkeypatch.setattr(module, "SQLAlchemyUnitOfWork", _Flaky)
    return _Flaky


def test_create_persists_row(user, session):
    store = SQLAlchemySessionStore()
    record = store.create(user_id=user.id, jti="row-jti", refresh_hash="c" * 64)

    row = session.execute(select(AuthSession).where(AuthSession.jti == "row-jti")).scalar_one()
    assert row.id == record.id
    assert row.refresh_hash == "c" * 64
    assert row.revoked_at is None


@pytest.mark.parametrize("jti, refresh_hash", [("", "c" * 64), ("jti", "")])
def test_create_refuses_half_written_sessions(user, jti, refresh_hash):
    with pytest.raises(ValueError):
        SQLAlchemySessionStore().create(user_id=user.id, jti=jti, refresh_hash=refresh_hash)


def test_revoke_is_a_conditional_update(session):
    row = AuthSessionFactory()
    session.commit()
    store = SQLAlchemySessionStore()

    assert store.revoke(row.id) is True
    assert store.revoke(row.id) is False
    session.expire_all()
    assert session.get(AuthSession, row.id).revoked_at is not None


def test_transient_errors_are_retried(flaky, session):
    row = AuthSessionFactory()
    session.commit()
    flaky.failures = 2

    store = SQLAlchemySessionStore(retry_attempts=3, retry_backoff=0)
    assert store.revoke(row.id) is True
    assert flaky.calls == 3


def test_retries_exhausted_surface_store_unavailable(flaky):
    flaky.failures = 10
    store = SQLAlchemySessionStore(retry_attempts=3, retry_backoff=0)

    with pytest.raises(StoreUnavailableError):
        store.revoke(1)
    assert flaky.calls == 3


def test_create_is_not_retried(flaky, user):
    flaky.failures = 1
    store = SQLAlchemySessionStore(retry_attempts=3, retry_backoff=0)

    with pytest.raises(StoreUnavailableError):
        store.create(user_id=user.id, jti="once", refresh_hash="d" * 64)
    assert flaky.calls == 1
