"""Shared fixtures: one app per run, one rolled-back transaction per test.

Tables are created once in an in-memory SQLite database. Every test gets a
session joined to an outer transaction plus a SAVEPOINT; commits issued by
units of work only release that SAVEPOINT, and the outer transaction is
rolled back when the test ends.
"""

from __future__ import annotations

import os

import pytest
from auth_api.core.config import TestingConfig
from auth_api.core.extensions import db as _db
from auth_api.factory import create_app
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker


class TestConfig(TestingConfig):
    """Settings for the suite.

    Google credentials are placeholders; outbound calls are intercepted with
    ``responses``. Proxy headers are ignored so the recorded IP is the test
    client's.
    """

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-entropy-0123456789"
    REDIS_URL = None
    SESSION_STORE_BACKEND = "sql"
    CORS_ORIGINS = "http://localhost:3000"
    TRUSTED_PROXY_HOPS = 0
    GOOGLE_CLIENT_ID = "client-id"
    GOOGLE_CLIENT_SECRET = "client-secret"
    GOOGLE_REDIRECT_URI = "http://localhost/api/auth/google/callback"
    APP_URL = "http://localhost:3000"
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    os.environ.pop("DATABASE_URL", None)
    flask_app = create_app(TestConfig, instance_relative_config=False)
    flask_app.logger.setLevel("WARNING")
    return flask_app


@pytest.fixture(scope="session")
def db(app):
    """Schema lifetime: created before the first test, dropped after the last."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    conn = db.engine.connect()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture()
def session(app, db, connection):
    """Scoped session installed as ``db.session`` for the duration of one test.

    A fresh app context is pushed so ``flask.g`` never carries over between tests.
    """
    ctx = app.app_context()
    ctx.push()
    outer = connection.begin()
    scoped = scoped_session(sessionmaker(bind=connection, future=True))
    savepoint = connection.begin_nested()

    @event.listens_for(scoped(), "after_transaction_end")
    def _reopen_savepoint(sess, trans):  # pragma: no cover
        nonlocal savepoint
        if trans.nested and not trans._parent.nested:
            savepoint = connection.begin_nested()

    previous = db.session
    db.session.remove()
    db.session = scoped
    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = previous
        outer.rollback()
        ctx.pop()


@pytest.fixture()
def client(app, session):
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    """Seeded :class:`faker.Faker`."""
    from faker import Faker

    fk = Faker()
    Faker.seed(1337)
    return fk


@pytest.fixture()
def user(session):
    """A committed password account (password ``Passw0rd!``)."""
    from tests.factories.user import UserFactory

    account = UserFactory()
    session.commit()
    return account


@pytest.fixture(autouse=True)
def _factories_session(session):
    """Point Factory Boy at the per-test session."""
    from tests.factories import SQLAlchemySession

    SQLAlchemySession.set(session)
    yield
