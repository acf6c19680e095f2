"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask or HTTP directly. They serve as stable contracts between stores,
repositories and application services.

The translation to HTTP responses (RFC 7807) is handled by
``session_auth/core/errors.py`` via ``BaseService.translate_exceptions()``.

Token failures form their own small hierarchy under :class:`TokenError`.
``ExpiredTokenError`` and ``RevokedTokenError`` keep the precise reason for
logs and audit; the HTTP layer collapses all of them into one uniform 401.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    :param exc: The exception raised by SQLAlchemy during flush/commit.
    :type exc: IntegrityError
    :param constraint_name: Constraint name to match (e.g. ``uq_users_email``).
    :type constraint_name: str
    :returns: ``True`` if the error message mentions the constraint.
    :rtype: bool
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer or BaseService translates them to APIError.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param detail: Short human-readable explanation.
    :type detail: str
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"


class InvalidCredentialsError(ServiceError):
    """Raised when an email/password pair does not authenticate."""

    def __init__(self, message: str = "invalid email or password") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Storage
# --------------------------------------------------------------------------- #


class StorageError(ServiceError):
    """
    Raised when the persistence boundary fails (connection lost, constraint,
    driver error). Fatal to the current request and never retried here.

    The original driver exception is chained as ``__cause__``.
    """

    def __init__(self, message: str = "storage failure") -> None:
        super().__init__(message)


class FingerprintCollisionError(StorageError):
    """Raised when a refresh-token fingerprint is already stored."""

    def __init__(self, message: str = "refresh token fingerprint already exists") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Tokens
# --------------------------------------------------------------------------- #


class TokenGenerationError(ServiceError):
    """Raised when the system entropy source cannot produce a secret."""


class TokenError(ServiceError):
    """Base class for every refresh/access token failure."""

    reason = "invalid"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"token {self.reason}")


class InvalidTokenError(TokenError):
    """Unknown, forged, malformed or badly signed token."""

    reason = "invalid"


class ExpiredTokenError(TokenError):
    """Structurally valid token whose lifetime is over."""

    reason = "expired"


class RevokedTokenError(TokenError):
    """Refresh token that was explicitly revoked or already rotated."""

    reason = "revoked"
