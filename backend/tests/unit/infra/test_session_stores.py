"""Behaviour shared by every :class:`SessionStore` implementation."""

from __future__ import annotations

import fakeredis
import pytest
from auth_api.infra.redis.redis_session_store import RedisSessionStore
from auth_api.infra.sql.sqlalchemy_session_store import SQLAlchemySessionStore
from auth_api.services._shared.errors import ConflictError
from auth_api.services._shared.ports import InMemorySessionStore


@pytest.fixture(params=["memory", "sql", "redis"])
def store(request):
    if request.param == "memory":
        return InMemorySessionStore()
    if request.param == "sql":
        return SQLAlchemySessionStore(retry_backoff=0)
    r = fakeredis.FakeRedis()
    r.flushall()
    return RedisSessionStore(r)


def _create(store, user_id, jti, **kwargs):
    return store.create(
        user_id=user_id,
        jti=jti,
        refresh_hash=kwargs.pop("refresh_hash", "a" * 64),
        ip=kwargs.pop("ip", "192.0.2.10"),
        user_agent=kwargs.pop("user_agent", "agent/1.0"),
    )


def test_create_then_find(store, user):
    created = _create(store, user.id, "jti-1")
    found = store.find_by_jti("jti-1")

    assert created.is_active
    assert found is not None
    assert (found.id, found.user_id, found.jti) == (created.id, user.id, "jti-1")
    assert found.refresh_hash == "a" * 64
    assert (found.ip, found.user_agent) == ("192.0.2.10", "agent/1.0")
    assert found.revoked_at is None


def test_find_unknown_returns_none(store):
    assert store.find_by_jti("missing") is None


def test_duplicate_jti_conflicts(store, user):
    _create(store, user.id, "dup")
    with pytest.raises(ConflictError):
        _create(store, user.id, "dup", refresh_hash="b" * 64)
    assert store.find_by_jti("dup").refresh_hash == "a" * 64


def test_revoke_transitions_exactly_once(store, user):
    record = _create(store, user.id, "jti-r")

    assert store.revoke(record.id) is True
    revoked = store.find_by_jti("jti-r")
    assert revoked.revoked_at is not None and not revoked.is_active

    assert store.revoke(record.id) is False
    assert store.find_by_jti("jti-r").revoked_at == revoked.revoked_at


def test_revoke_unknown_session_is_false(store):
    assert store.revoke(987654) is False


def test_list_and_revoke_all_for_user(store, user):
    first = _create(store, user.id, "u-1")
    second = _create(store, user.id, "u-2")
    third = _create(store, user.id, "u-3")
    store.revoke(second.id)

    active = store.list_active_for_user(user.id)
    assert [r.id for r in active] == [first.id, third.id]

    assert store.revoke_all_for_user(user.id) == 2
    assert store.list_active_for_user(user.id) == []
    assert store.revoke_all_for_user(user.id) == 0
