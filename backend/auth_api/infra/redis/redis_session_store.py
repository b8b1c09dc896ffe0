# comments in English; reST docstrings
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, TypeVar

import redis  # type: ignore[import-untyped]

from auth_api.services._shared.errors import ConflictError, StoreUnavailableError
from auth_api.services._shared.ports import SessionRecord, SessionStore

T = TypeVar("T")


def _s(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisSessionStore(SessionStore):
    """
    Redis-backed session store.

    Layout
    ------
    ``<prefix>:seq``            counter handing out session ids
    ``<prefix>:{id}``           hash with the session fields
    ``<prefix>:jti:{jti}``      id of the session owning ``jti``
    ``<prefix>:user:{user_id}`` set of the user's session ids

    Check-and-write steps run under ``WATCH``/``MULTI``/``EXEC`` so two
    clients racing on the same key cannot both succeed. Keys carry no TTL;
    sessions are kept like rows in the SQL store.

    :param r: A Redis client (timeouts and reconnect policy configured by the
        caller, see :func:`auth_api.core.extensions.build_redis_client`).
    :param prefix: Key namespace.
    """

    r: redis.Redis
    prefix: str = "sess"

    # -------------------- helpers --------------------

    def _k(self, session_id: int | str) -> str:
        return f"{self.prefix}:{session_id}"

    def _kj(self, jti: str) -> str:
        return f"{self.prefix}:jti:{jti}"

    def _ku(self, user_id: int) -> str:
        return f"{self.prefix}:user:{user_id}"

    @staticmethod
    def _now() -> datetime:
        return datetime.now(UTC)

    def _call(self, op: str, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except redis.RedisError as exc:
            raise StoreUnavailableError(f"Session store unavailable during {op}") from exc

    def _load(self, session_id: int | str) -> SessionRecord | None:
        h = self.r.hgetall(self._k(session_id))
        if not h:
            return None
        fields = {_s(k): _s(v) for k, v in h.items()}
        revoked_raw = fields.get("revoked_at", "")
        return SessionRecord(
            id=int(session_id),
            user_id=int(fields["user_id"]),
            jti=fields["jti"],
            refresh_hash=fields["refresh_hash"],
            ip=fields.get("ip") or None,
            user_agent=fields.get("user_agent") or None,
            created_at=datetime.fromisoformat(fields["created_at"]),
            revoked_at=datetime.fromisoformat(revoked_raw) if revoked_raw else None,
        )

    # -------------------- API ------------------------

    def create(
        self,
        *,
        user_id: int,
        jti: str,
        refresh_hash: str,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> SessionRecord:
        if not jti or not refresh_hash:
            raise ValueError("A session requires both a jti and a refresh hash.")

        def _create() -> SessionRecord:
            k_jti = self._kj(jti)
            session_id = int(self.r.incr(f"{self.prefix}:seq"))
            created_at = self._now()
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(k_jti)
                        if p.exists(k_jti):
                            p.unwatch()
                            raise ConflictError("Session", "jti already exists")
                        p.multi()
                        p.set(k_jti, session_id)
                        p.hset(
                            self._k(session_id),
                            mapping={
                                "user_id": str(user_id),
                                "jti": jti,
                                "refresh_hash": refresh_hash,
                                "ip": ip or "",
                                "user_agent": user_agent or "",
                                "created_at": created_at.isoformat(),
                                "revoked_at": "",
                            },
                        )
                        p.sadd(self._ku(user_id), session_id)
                        p.execute()
                    break
                except redis.WatchError:
                    # Someone touched the jti key; re-check for a conflict
                    continue
            return SessionRecord(
                id=session_id,
                user_id=user_id,
                jti=jti,
                refresh_hash=refresh_hash,
                ip=ip,
                user_agent=user_agent,
                created_at=created_at,
            )

        return self._call("create", _create)

    def find_by_jti(self, jti: str) -> SessionRecord | None:
        def _find() -> SessionRecord | None:
            session_id = self.r.get(self._kj(jti))
            if session_id is None:
                return None
            return self._load(_s(session_id))

        return self._call("find_by_jti", _find)

    def _revoke_one(self, session_id: int | str, at: datetime) -> bool:
        key = self._k(session_id)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    if not p.exists(key) or _s(p.hget(key, "revoked_at")):
                        p.unwatch()
                        return False
                    p.multi()
                    p.hset(key, "revoked_at", at.isoformat())
                    p.execute()
                    return True
            except redis.WatchError:
                # Concurrent modification detected; re-check
                continue

    def revoke(self, session_id: int) -> bool:
        return self._call("revoke", lambda: self._revoke_one(session_id, self._now()))

    def revoke_all_for_user(self, user_id: int) -> int:
        def _revoke_all() -> int:
            now = self._now()
            members = self.r.smembers(self._ku(user_id))
            return sum(1 for m in members if self._revoke_one(_s(m), now))

        return self._call("revoke_all_for_user", _revoke_all)

    def list_active_for_user(self, user_id: int) -> list[SessionRecord]:
        def _list() -> list[SessionRecord]:
            ids = sorted(int(_s(m)) for m in self.r.smembers(self._ku(user_id)))
            records = (self._load(i) for i in ids)
            return [r for r in records if r is not None and r.is_active]

        return self._call("list_active_for_user", _list)
