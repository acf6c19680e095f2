"""Refresh token repository: insert, lookup and conditional revocation."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import false, select, update
from sqlalchemy.engine import CursorResult

from session_auth.models.refresh_token import RefreshToken
from session_auth.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Revocations are single ``UPDATE`` statements guarded by
    ``revoked = false`` so the database performs the compare-and-set; callers
    read the affected row count instead of checking state beforehand.
    """

    model = RefreshToken

    def get_by_fingerprint(self, fingerprint: str) -> RefreshToken | None:
        """Fetch the row stored under ``fingerprint``."""
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.fingerprint == fingerprint)
            .execution_options(populate_existing=True)
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def revoke_if_active(
        self,
        fingerprint: str,
        *,
        owner_id: int | None = None,
        not_expired_at: datetime | None = None,
    ) -> int:
        """
        Set ``revoked = true`` on a non-revoked row.

        :param fingerprint: Row key.
        :param owner_id: When given, the row must belong to this user.
        :param not_expired_at: When given, the row must still be live at this instant
            (``expires_at >= not_expired_at``, matching :meth:`RefreshTokenRecord.is_expired`).
        :returns: Number of rows flipped (0 or 1).
        """
        stmt = update(RefreshToken).where(
            RefreshToken.fingerprint == fingerprint,
            RefreshToken.revoked == false(),
        )
        if owner_id is not None:
            stmt = stmt.where(RefreshToken.user_id == owner_id)
        if not_expired_at is not None:
            stmt = stmt.where(RefreshToken.expires_at >= not_expired_at)
        stmt = stmt.values(revoked=True).execution_options(synchronize_session=False)
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)

    def revoke_all_for_user(self, owner_id: int) -> int:
        """Revoke every non-revoked row of ``owner_id``; returns the row count."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == owner_id, RefreshToken.revoked == false())
            .values(revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)
