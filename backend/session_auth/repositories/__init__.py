"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from session_auth.repositories.base import BaseRepository
from session_auth.repositories.refresh_token import RefreshTokenRepository
from session_auth.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
