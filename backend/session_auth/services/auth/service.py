# session_auth/services/auth/service.py
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from session_auth.models.user import User
from session_auth.repositories.user import UserRepository
from session_auth.services._shared.base import BaseService
from session_auth.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotFoundError,
    violates,
)
from session_auth.services.auth.dto import (
    AuthSessionOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    UserOut,
)
from session_auth.services.refresh_tokens import RefreshTokenService, RevokeOutcome
from session_auth.services.tokens import AccessTokenIssuer

log = logging.getLogger(__name__)


class AuthService(BaseService):
    """
    Session facade (register / login / refresh / logout).

    Access tokens come from :class:`AccessTokenIssuer`; refresh tokens and
    their rotation are owned by :class:`RefreshTokenService`. This class only
    deals with users and with sequencing the two.
    """

    def __init__(
        self,
        *,
        access_tokens: AccessTokenIssuer,
        refresh_tokens: RefreshTokenService,
    ) -> None:
        """
        :param access_tokens: Issuer for signed access tokens.
        :param refresh_tokens: Refresh token lifecycle service.
        """
        super().__init__()
        self.access_tokens = access_tokens
        self.refresh_tokens = refresh_tokens

    # ------------------------------------------------------------------ #
    # Register / Login
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthSessionOut:
        """
        Create a user and open a first session.

        :raises ConflictError: If the email is already registered.
        :raises StorageError: If the refresh token cannot be persisted.
        """
        try:
            with self.rw_uow() as uow:
                repo: UserRepository = uow.users
                if repo.exists_by_email(dto.email):
                    raise ConflictError("User", "email already registered")
                user = User(email=dto.email, username=dto.username)
                user.password = dto.password
                repo.add(user)
                user_out = self._to_user_out(user)
        except IntegrityError as exc:
            # Lost a concurrent registration for the same email.
            if violates(exc, "uq_users_email") or violates(exc, "users.email"):
                raise ConflictError("User", "email already registered") from exc
            raise

        log.info("auth.register", extra={"user_id": user_out.id})
        return self._open_session(user_out)

    def login(self, dto: LoginIn) -> AuthSessionOut:
        """
        Authenticate credentials and issue a fresh token pair.

        :raises InvalidCredentialsError: Unknown email or wrong password (same error).
        """
        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.authenticate(dto.email, dto.password)
            user_out = self._to_user_out(user) if user is not None else None

        if user_out is None:
            log.info("auth.login.failed", extra={"reason": "invalid_credentials"})
            raise InvalidCredentialsError()
        return self._open_session(user_out)

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> AuthSessionOut:
        """
        Rotate the refresh token and emit a new token pair.

        :raises TokenError: Unknown, expired, revoked or already rotated token.
        """
        rotation = self.refresh_tokens.rotate(dto.refresh_token)

        with self.ro_uow() as uow:
            repo: UserRepository = uow.users
            user = repo.get(rotation.owner_id)
            user_out = self._to_user_out(user) if user is not None else None

        if user_out is None:
            # Owner vanished after the token was minted; treat like a bad token.
            raise InvalidTokenError("refresh token owner no longer exists")

        return AuthSessionOut(
            user=user_out,
            access_token=self.access_tokens.generate(user_out.id),
            refresh_token=rotation.refresh_token,
        )

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> RevokeOutcome:
        """
        Revoke one refresh token. Never fails for unknown or revoked tokens.

        :raises StorageError: Only when the store itself fails.
        """
        return self.refresh_tokens.revoke(dto.refresh_token)

    def logout_all(self, user_id: int) -> int:
        """Revoke every refresh token of ``user_id``; returns how many."""
        return self.refresh_tokens.revoke_all_for_user(user_id)

    # ------------------------------------------------------------------ #
    # Current user
    # ------------------------------------------------------------------ #

    def current_user(self, user_id: int) -> UserOut:
        """
        Load the authenticated user.

        :raises NotFoundError: If the account was deleted after token issuance.
        """
        with self.ro_uow() as uow:
            user = uow.users.get(user_id)
            if user is None:
                raise NotFoundError("User", user_id)
            return self._to_user_out(user)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _open_session(self, user: UserOut) -> AuthSessionOut:
        # Refresh first: if persisting it fails nothing is handed out.
        refresh = self.refresh_tokens.generate(user.id)
        access = self.access_tokens.generate(user.id)
        return AuthSessionOut(user=user, access_token=access, refresh_token=refresh)

    @staticmethod
    def _to_user_out(user: User) -> UserOut:
        return UserOut(id=user.id, email=user.email, username=user.username)
