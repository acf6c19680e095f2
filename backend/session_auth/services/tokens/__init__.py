"""Token primitives: refresh secret codec and access token issuer."""

from __future__ import annotations

from .access import ACCESS_TOKEN_TYPE, AccessTokenClaims, AccessTokenIssuer
from .codec import fingerprint, generate_secret

__all__ = [
    "ACCESS_TOKEN_TYPE",
    "AccessTokenClaims",
    "AccessTokenIssuer",
    "fingerprint",
    "generate_secret",
]
