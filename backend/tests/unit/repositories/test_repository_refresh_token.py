"""Unit tests for RefreshTokenRepository conditional updates."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from session_auth.repositories import RefreshTokenRepository
from tests.factories.refresh_token import RefreshTokenFactory


class TestRefreshTokenRepository:
    def test_get_by_fingerprint(self, session):
        row = RefreshTokenFactory()
        repo = RefreshTokenRepository(session=session)

        assert repo.get_by_fingerprint(row.fingerprint).id == row.id
        assert repo.get_by_fingerprint("nope") is None

    def test_revoke_if_active_flips_once(self, session):
        row = RefreshTokenFactory()
        repo = RefreshTokenRepository(session=session)

        assert repo.revoke_if_active(row.fingerprint) == 1
        assert repo.revoke_if_active(row.fingerprint) == 0
        assert repo.get_by_fingerprint(row.fingerprint).revoked is True

    def test_revoke_if_active_honours_owner_and_expiry(self, session):
        issued = datetime(2026, 1, 1, tzinfo=UTC)
        row = RefreshTokenFactory(issued_at=issued, expires_at=issued + timedelta(hours=1))
        repo = RefreshTokenRepository(session=session)

        assert repo.revoke_if_active(row.fingerprint, owner_id=row.user_id + 1) == 0
        assert (
            repo.revoke_if_active(row.fingerprint, not_expired_at=issued + timedelta(hours=2)) == 0
        )
        assert (
            repo.revoke_if_active(
                row.fingerprint, owner_id=row.user_id, not_expired_at=issued + timedelta(minutes=5)
            )
            == 1
        )

    def test_revoke_all_for_user(self, session):
        first = RefreshTokenFactory()
        RefreshTokenFactory.create_batch(2, user=first.user)
        other = RefreshTokenFactory()
        repo = RefreshTokenRepository(session=session)

        assert repo.revoke_all_for_user(first.user_id) == 3
        assert repo.get_by_fingerprint(other.fingerprint).revoked is False
