"""
Unit tests for RedisRefreshTokenStore using fakeredis.

They use fakeredis.FakeRedis so they run entirely in-memory and integrate with pytest.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import fakeredis
import pytest
import redis

from session_auth.infra.redis import RedisRefreshTokenStore
from session_auth.services._shared.errors import (
    ExpiredTokenError,
    FingerprintCollisionError,
    StorageError,
)
from session_auth.services._shared.ports import RefreshTokenRecord
from session_auth.services.refresh_tokens import RefreshTokenConfig, RefreshTokenService
from session_auth.services.tokens import fingerprint, generate_secret

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


def _record(fp: str, owner: int = 1, *, ttl: timedelta = timedelta(hours=1)) -> RefreshTokenRecord:
    return RefreshTokenRecord(fingerprint=fp, owner_id=owner, issued_at=NOW, expires_at=NOW + ttl)


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def store(fake_redis):
    return RedisRefreshTokenStore(r=fake_redis)


def test_create_and_get_round_trip(store, fake_redis):
    store.create(_record("fp-1", owner=7))

    rec = store.get_by_fingerprint("fp-1")
    assert rec == _record("fp-1", owner=7)
    assert fake_redis.smembers("rt:u:7") == {b"fp-1"}
    assert fake_redis.pttl("rt:fp-1") == -1
    assert 0 < fake_redis.pttl("rt:u:7") <= 3_600_000


def test_get_unknown_returns_none(store):
    assert store.get_by_fingerprint("missing") is None


def test_create_rejects_collision_without_overwrite(store):
    store.create(_record("fp-1", owner=1))

    with pytest.raises(FingerprintCollisionError):
        store.create(_record("fp-1", owner=2))
    assert store.get_by_fingerprint("fp-1").owner_id == 1


def test_revoke_if_active_is_compare_and_set(store):
    store.create(_record("fp-1", owner=1))

    assert store.revoke_if_active("fp-1", owner_id=2) is False
    assert store.revoke_if_active("fp-1") is True
    assert store.revoke_if_active("fp-1") is False
    assert store.revoke_if_active("missing") is False
    assert store.get_by_fingerprint("fp-1").revoked is True


def test_rotate_success(store, fake_redis):
    store.create(_record("old", owner=3))

    assert store.rotate(
        old_fingerprint="old", owner_id=3, new_record=_record("new", owner=3), now=NOW
    )

    assert store.get_by_fingerprint("old").revoked is True
    assert store.get_by_fingerprint("new").revoked is False
    assert fake_redis.smembers("rt:u:3") == {b"new"}


@pytest.mark.parametrize(
    "setup,owner,now",
    [
        ("revoked", 3, NOW),
        ("fresh", 4, NOW),
        ("fresh", 3, NOW + timedelta(hours=2)),
        ("missing", 3, NOW),
    ],
)
def test_rotate_refuses_inactive_or_foreign(store, setup, owner, now):
    if setup != "missing":
        store.create(_record("old", owner=3))
    if setup == "revoked":
        store.revoke_if_active("old")

    ok = store.rotate(old_fingerprint="old", owner_id=owner, new_record=_record("new", owner=3), now=now)

    assert ok is False
    assert store.get_by_fingerprint("new") is None


def test_second_rotation_of_same_fingerprint_loses(store):
    store.create(_record("old", owner=3))

    first = store.rotate(old_fingerprint="old", owner_id=3, new_record=_record("a", 3), now=NOW)
    second = store.rotate(old_fingerprint="old", owner_id=3, new_record=_record("b", 3), now=NOW)

    assert (first, second) == (True, False)
    assert store.get_by_fingerprint("b") is None


def test_rotate_collision_leaves_old_active(store):
    store.create(_record("old", owner=3))
    store.create(_record("taken", owner=9))

    with pytest.raises(FingerprintCollisionError):
        store.rotate(old_fingerprint="old", owner_id=3, new_record=_record("taken", 3), now=NOW)
    assert store.get_by_fingerprint("old").revoked is False


def test_revoke_all_for_user_counts_flips(store):
    for fp in ("a", "b", "c"):
        store.create(_record(fp, owner=5))
    store.create(_record("other", owner=6))
    store.revoke_if_active("a")

    assert store.revoke_all_for_user(5) == 2
    assert all(store.get_by_fingerprint(fp).revoked for fp in ("a", "b", "c"))
    assert store.get_by_fingerprint("other").revoked is False
    assert store.revoke_all_for_user(5) == 0


def test_redis_failure_becomes_storage_error(store, monkeypatch):
    def _down(*args, **kwargs):
        raise redis.ConnectionError("down")

    monkeypatch.setattr(store.r, "hgetall", _down)

    with pytest.raises(StorageError):
        store.get_by_fingerprint("fp")


def test_retention_bounds_how_long_records_outlive_expiry(fake_redis):
    store = RedisRefreshTokenStore(r=fake_redis, retention=timedelta(days=1))

    store.create(_record("fp-1", owner=7))

    assert 3_600_000 < fake_redis.pttl("rt:fp-1") <= 3_600_000 + 86_400_000


def test_user_index_ttl_follows_newest_member(store, fake_redis):
    store.create(_record("a", owner=5))
    store.create(_record("b", owner=5, ttl=timedelta(hours=3)))
    store.create(_record("c", owner=5, ttl=timedelta(minutes=30)))

    assert fake_redis.pttl("rt:u:5") > 2 * 3_600_000


def test_rotate_extends_user_index_ttl(store, fake_redis):
    store.create(_record("old", owner=3))

    store.rotate(
        old_fingerprint="old",
        owner_id=3,
        new_record=_record("new", owner=3, ttl=timedelta(hours=5)),
        now=NOW,
    )

    assert fake_redis.pttl("rt:u:3") > 4 * 3_600_000


class TestExpiredTokensThroughService:
    @pytest.fixture
    def service(self, store):
        return RefreshTokenService(store=store, cfg=RefreshTokenConfig(ttl=timedelta(hours=1)))

    @pytest.fixture
    def expired_secret(self, store):
        secret = generate_secret()
        now = datetime.now(UTC)
        store.create(
            RefreshTokenRecord(
                fingerprint=fingerprint(secret),
                owner_id=1,
                issued_at=now - timedelta(hours=2),
                expires_at=now - timedelta(hours=1),
            )
        )
        return secret

    def test_validate_reports_expired(self, service, expired_secret, fake_redis):
        with pytest.raises(ExpiredTokenError):
            service.validate(expired_secret)
        assert fake_redis.exists(f"rt:{fingerprint(expired_secret)}")

    def test_rotate_reports_expired_and_mints_nothing(self, service, expired_secret, fake_redis):
        with pytest.raises(ExpiredTokenError):
            service.rotate(expired_secret)
        assert fake_redis.smembers("rt:u:1") == {fingerprint(expired_secret).encode()}
