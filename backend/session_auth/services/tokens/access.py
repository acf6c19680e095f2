"""Short-lived signed bearer tokens carrying the user identity."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from session_auth.services._shared.errors import InvalidTokenError
from session_auth.services._shared.ports import TokenProvider

ACCESS_TOKEN_TYPE = "access"


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    """
    Claims recovered from a verified access token.

    :param subject: Authenticated user id.
    :type subject: int
    :param issued_at: ``iat`` claim (UTC).
    :type issued_at: datetime
    :param expires_at: ``exp`` claim (UTC).
    :type expires_at: datetime
    """

    subject: int
    issued_at: datetime
    expires_at: datetime


class AccessTokenIssuer:
    """
    Mint and verify access tokens through a :class:`TokenProvider`.

    There is no revocation list: a leaked access token stays valid until its
    ``exp``, so ``ttl`` is expected to be short.
    """

    def __init__(self, *, provider: TokenProvider, ttl: timedelta) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Access token TTL must be positive.")
        self.provider = provider
        self.ttl = ttl

    def generate(self, subject: int) -> str:
        """
        Issue a signed token for ``subject`` expiring after ``ttl``.

        :param subject: User id to embed as ``sub``.
        :type subject: int
        :returns: Encoded token.
        :rtype: str
        """
        return self.provider.create_access_token(identity=str(subject), expires_delta=self.ttl)

    def parse(self, token: str) -> AccessTokenClaims:
        """
        Verify ``token`` and return its claims.

        :raises InvalidTokenError: Bad signature, malformed token, wrong type.
        :raises ExpiredTokenError: Valid token past its ``exp``.
        """
        if not token:
            raise InvalidTokenError("empty token")
        claims = self.provider.decode(token)
        if claims.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError("wrong token type")
        return AccessTokenClaims(
            subject=self._coerce_subject(claims.get("sub")),
            issued_at=self._ts(claims.get("iat")),
            expires_at=self._ts(claims.get("exp")),
        )

    def verify(self, token: str) -> int:
        """Return the subject of a valid ``token``."""
        return self.parse(token).subject

    @staticmethod
    def _coerce_subject(subject: Any) -> int:
        if isinstance(subject, int) and not isinstance(subject, bool):
            return subject
        if isinstance(subject, str) and subject.isdigit():
            return int(subject)
        raise InvalidTokenError("invalid token subject")

    @staticmethod
    def _ts(value: Any) -> datetime:
        if not isinstance(value, int | float):
            raise InvalidTokenError("missing time claim")
        return datetime.fromtimestamp(value, tz=UTC)
