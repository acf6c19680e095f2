"""Session facade: register, login, refresh, logout."""

from __future__ import annotations

from .dto import AuthSessionOut, LoginIn, LogoutIn, RefreshIn, RegisterIn, UserOut
from .service import AuthService

__all__ = [
    "AuthService",
    "AuthSessionOut",
    "LoginIn",
    "LogoutIn",
    "RefreshIn",
    "RegisterIn",
    "UserOut",
]
