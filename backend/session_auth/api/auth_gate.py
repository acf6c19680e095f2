"""Bearer authentication for protected routes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NoReturn

from session_auth.core.errors import Unauthorized
from session_auth.services._shared.errors import TokenError
from session_auth.services.tokens import AccessTokenIssuer

log = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True, slots=True)
class AuthenticatedIdentity:
    """Verified caller attached to ``flask.g.identity``."""

    user_id: int


def extract_bearer(header: str | None) -> str | None:
    """
    Return the token of an ``Authorization: Bearer <token>`` header.

    The scheme is case-sensitive and must be followed by exactly one space;
    the token itself may not contain whitespace. Anything else yields ``None``.
    """
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX) :]
    if not token or any(ch.isspace() for ch in token):
        return None
    return token


class AuthenticationGate:
    """
    Turn an ``Authorization`` header into an :class:`AuthenticatedIdentity`.

    Every failure raises the same :class:`Unauthorized`; the concrete reason
    only goes to the log.
    """

    def __init__(self, issuer: AccessTokenIssuer) -> None:
        self.issuer = issuer

    def authenticate(self, header: str | None) -> AuthenticatedIdentity:
        if not header:
            self._reject("missing_header")
        token = extract_bearer(header)
        if token is None:
            self._reject("malformed_header")
        try:
            subject = self.issuer.verify(token)
        except TokenError as exc:
            self._reject(exc.reason)
        return AuthenticatedIdentity(user_id=subject)

    @staticmethod
    def _reject(reason: str) -> NoReturn:
        log.info("auth.gate.rejected", extra={"reason": reason})
        raise Unauthorized()
