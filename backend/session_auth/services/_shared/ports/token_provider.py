from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

from session_auth.services._shared.errors import ExpiredTokenError, InvalidTokenError


class TokenProvider(Protocol):
    """
    Port for minting and decoding signed access tokens.

    ``decode`` MUST verify signature and expiry and raise
    :class:`InvalidTokenError` or :class:`ExpiredTokenError` instead of
    library-specific exceptions.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]: ...


class StubTokenProvider(TokenProvider):
    """Deterministic, unsigned token provider used in unit tests."""

    def __init__(self) -> None:
        self._seq = 0
        self._issued: dict[str, dict[str, Any]] = {}

    def create_access_token(
        self,
        *,
        identity: str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        self._seq += 1
        now = datetime.now(UTC)
        token = f"access.{identity}.{self._seq}"
        payload: dict[str, Any] = {
            "sub": identity,
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int((now + expires_delta).timestamp()),
        }
        if additional_claims:
            payload.update(additional_claims)
        self._issued[token] = payload
        return token

    def decode(self, token: str) -> dict[str, Any]:
        payload = self._issued.get(token)
        if payload is None:
            raise InvalidTokenError()
        if datetime.now(UTC).timestamp() > payload["exp"]:
            raise ExpiredTokenError()
        return dict(payload)
