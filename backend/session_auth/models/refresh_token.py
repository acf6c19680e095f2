"""Refresh token rows. Only the fingerprint of the secret is stored."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from session_auth.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin, UTCDateTime

if TYPE_CHECKING:
    from .user import User


class RefreshToken(PKMixin, TimestampMixin, ReprMixin, db.Model):
    """
    Persisted refresh session.

    Fields
    ------
    fingerprint : str
        Base64url SHA-256 of the secret. Unique; immutable once stored.
    user_id : int
        Owning user.
    issued_at, expires_at : datetime
        ``expires_at = issued_at + TTL``.
    revoked : bool
        Monotonic ``False`` -> ``True``. Rows are never deleted by the service.
    """

    __tablename__ = "refresh_tokens"

    fingerprint: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    issued_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    user: Mapped[User] = relationship(back_populates="refresh_tokens")

    __table_args__ = (
        UniqueConstraint("fingerprint", name="uq_refresh_tokens_fingerprint"),
        Index("ix_refresh_tokens_user_id", "user_id"),
    )
