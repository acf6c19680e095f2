# comments in English; reST docstrings
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

import redis  # type: ignore[import-untyped]

from session_auth.services._shared.errors import FingerprintCollisionError, StorageError
from session_auth.services._shared.ports import RefreshTokenRecord, RefreshTokenStore

# WATCH/MULTI/EXEC attempts before giving up on a hot key.
MAX_WATCH_RETRIES = 32


def _s(value: Any, default: str = "") -> str:
    """Decode a Redis reply regardless of ``decode_responses``."""
    if value is None:
        return default
    if isinstance(value, bytes | bytearray):
        return value.decode()
    return str(value)


def _field(h: Mapping[Any, Any], name: str, default: str = "") -> str:
    # Hash keys come back as bytes or str depending on the client settings.
    if name in h:
        return _s(h[name], default)
    return _s(h.get(name.encode()), default)


def _ttl_ms(expires_at: datetime, now: datetime) -> int:
    return max(1, int((expires_at - now) / timedelta(milliseconds=1)))


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store with atomic rotation.

    Layout:

    - ``rt:{fingerprint}`` hash with ``user_id``, ``issued_at``, ``expires_at``
      (ISO-8601 UTC) and ``revoked`` (``"0"``/``"1"``). It outlives
      ``expires_at`` so an expired token still reads as expired; with
      ``retention`` set, Redis drops it that long after expiry.
    - ``rt:u:{user_id}`` set of the user's non-revoked fingerprints. Its TTL
      is pushed out to the lifetime of the newest member, so entries of
      tokens that simply expire leave together with the set.

    Every state change is an optimistic ``WATCH``/``MULTI``/``EXEC``
    transaction retried on :class:`redis.WatchError`.

    :param r: A Redis client (already connected).
    :param retention: How long a token hash is kept past ``expires_at``;
        ``None`` keeps it until an external cleanup removes it.
    """

    r: redis.Redis
    retention: timedelta | None = None

    # -------------------- helpers --------------------

    @staticmethod
    def _k(fingerprint: str) -> str:
        return f"rt:{fingerprint}"

    @staticmethod
    def _ku(owner_id: int) -> str:
        return f"rt:u:{owner_id}"

    @staticmethod
    def _mapping(record: RefreshTokenRecord) -> dict[str, str]:
        return {
            "user_id": str(record.owner_id),
            "issued_at": record.issued_at.isoformat(),
            "expires_at": record.expires_at.isoformat(),
            "revoked": "1" if record.revoked else "0",
        }

    @staticmethod
    def _to_record(fingerprint: str, h: Mapping[Any, Any]) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            fingerprint=fingerprint,
            owner_id=int(_field(h, "user_id", "0")),
            issued_at=datetime.fromisoformat(_field(h, "issued_at")),
            expires_at=datetime.fromisoformat(_field(h, "expires_at")),
            revoked=_field(h, "revoked", "0") == "1",
        )

    def _store_record(self, p, record: RefreshTokenRecord, now: datetime, index_ttl: int) -> None:
        """
        Queue the writes of a new record; call after ``p.multi()``.

        :param index_ttl: ``PTTL`` of the user index read before ``MULTI``.
        """
        key = self._k(record.fingerprint)
        key_u = self._ku(record.owner_id)
        p.hset(key, mapping=self._mapping(record))
        if self.retention is not None:
            p.pexpire(key, _ttl_ms(record.expires_at + self.retention, now))
        p.sadd(key_u, record.fingerprint)
        lifetime = _ttl_ms(record.expires_at, now)
        # -2 (missing) and -1 (no expiry) are both below any lifetime.
        if index_ttl < lifetime:
            p.pexpire(key_u, lifetime)

    def _transact(self, keys: list[str], body) -> Any:
        """
        Run ``body(pipe)`` under ``WATCH keys`` until EXEC succeeds.

        ``body`` reads through the pipeline (immediate mode), then calls
        ``pipe.multi()`` and queues writes. Its return value is passed back.
        """
        try:
            for _ in range(MAX_WATCH_RETRIES):
                try:
                    with self.r.pipeline() as p:
                        p.watch(*keys)
                        result = body(p)
                        if p.explicit_transaction:
                            p.execute()
                        else:
                            p.unwatch()
                        return result
                except redis.WatchError:
                    # Concurrent modification detected; retry loop
                    continue
        except redis.RedisError as exc:
            raise StorageError() from exc
        raise StorageError("refresh token store contention")

    # -------------------- API ------------------------

    def create(self, record: RefreshTokenRecord) -> None:
        key = self._k(record.fingerprint)
        key_u = self._ku(record.owner_id)

        def _body(p) -> None:
            if p.exists(key):
                raise FingerprintCollisionError()
            index_ttl = int(p.pttl(key_u))
            p.multi()
            self._store_record(p, record, record.issued_at, index_ttl)

        self._transact([key, key_u], _body)

    def get_by_fingerprint(self, fingerprint: str) -> RefreshTokenRecord | None:
        try:
            h = self.r.hgetall(self._k(fingerprint))
        except redis.RedisError as exc:
            raise StorageError() from exc
        if not h:
            return None
        return self._to_record(fingerprint, h)

    def revoke_if_active(self, fingerprint: str, *, owner_id: int | None = None) -> bool:
        key = self._k(fingerprint)

        def _body(p) -> bool:
            h = p.hgetall(key)
            if not h or _field(h, "revoked", "0") == "1":
                return False
            uid = int(_field(h, "user_id", "0"))
            if owner_id is not None and uid != owner_id:
                return False
            p.multi()
            p.hset(key, "revoked", "1")
            p.srem(self._ku(uid), fingerprint)
            return True

        return bool(self._transact([key], _body))

    def rotate(
        self,
        *,
        old_fingerprint: str,
        owner_id: int,
        new_record: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        """
        Atomically consume ``old_fingerprint`` and store ``new_record``.

        - Check existence, owner and state of the old hash.
        - Reject (``False``) if revoked or expired at ``now``.
        - Mark old as revoked and create the new hash in one EXEC.
        """
        k_old = self._k(old_fingerprint)
        k_new = self._k(new_record.fingerprint)
        k_user = self._ku(owner_id)

        def _body(p) -> bool:
            h = p.hgetall(k_old)
            if not h:
                return False
            old = self._to_record(old_fingerprint, h)
            if old.owner_id != owner_id or not old.is_active(now):
                return False
            if p.exists(k_new):
                raise FingerprintCollisionError()
            index_ttl = int(p.pttl(k_user))
            p.multi()
            p.hset(k_old, "revoked", "1")
            p.srem(k_user, old_fingerprint)
            self._store_record(p, new_record, now, index_ttl)
            return True

        return bool(self._transact([k_old, k_new, k_user], _body))

    def revoke_all_for_user(self, owner_id: int) -> int:
        key_u = self._ku(owner_id)

        def _body(p) -> int:
            members = sorted(_s(m) for m in p.smembers(key_u))
            if members:
                # Watch the member hashes too so a concurrent rotate restarts us.
                p.watch(*(self._k(fp) for fp in members))
            active = [
                fp
                for fp in members
                if (rev := p.hget(self._k(fp), "revoked")) is not None and _s(rev) == "0"
            ]
            p.multi()
            for fp in active:
                p.hset(self._k(fp), "revoked", "1")
            p.delete(key_u)
            return len(active)

        return int(self._transact([key_u], _body))
