"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    AuthResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
    UserSchema,
)

__all__ = [
    "AuthResponseSchema",
    "LoginSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RegisterSchema",
    "UserSchema",
]
