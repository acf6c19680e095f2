# session_auth/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for account registration.

    :param email: User email (normalized by the model).
    :type email: str
    :param password: Raw password (hashed before storage).
    :type password: str
    :param username: Optional display name.
    :type username: str | None
    """

    email: str
    password: str
    username: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh secret issued earlier.
    :type refresh_token: str
    """

    refresh_token: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """Input DTO for logout of a single session."""

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserOut:
    """Public user representation."""

    id: int
    email: str
    username: str | None


@dataclass(frozen=True, slots=True)
class AuthSessionOut:
    """
    Output DTO returned by register, login and refresh.

    :param user: Authenticated user.
    :type user: UserOut
    :param access_token: Signed, short-lived access token.
    :type access_token: str
    :param refresh_token: Opaque, single-use refresh secret.
    :type refresh_token: str
    :param token_type: Always ``"bearer"``.
    :type token_type: str
    """

    user: UserOut
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
