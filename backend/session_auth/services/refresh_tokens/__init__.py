"""Refresh token lifecycle service."""

from __future__ import annotations

from .dto import RefreshTokenConfig, RevokeOutcome, RotationOut
from .service import RefreshTokenService

__all__ = ["RefreshTokenConfig", "RefreshTokenService", "RevokeOutcome", "RotationOut"]
