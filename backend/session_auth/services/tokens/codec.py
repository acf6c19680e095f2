"""
Opaque refresh-token secrets and their storage fingerprints.

The plaintext secret is handed to the client once and never persisted; the
store is keyed by :func:`fingerprint` instead. A plain SHA-256 digest is
enough here because every secret already carries 256 bits of entropy, and the
store needs a deterministic value for equality lookups (so no salt and no
slow work factor, unlike password hashing).
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from session_auth.services._shared.errors import TokenGenerationError

SECRET_BYTES = 32


def generate_secret() -> str:
    """
    Produce a new URL-safe refresh-token secret.

    :returns: Base64url text encoding ``SECRET_BYTES`` random bytes.
    :rtype: str
    :raises TokenGenerationError: If the OS entropy source fails.
    """
    try:
        raw = secrets.token_bytes(SECRET_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise TokenGenerationError("failed to generate random token") from exc
    return base64.urlsafe_b64encode(raw).decode("ascii")


def fingerprint(secret: str) -> str:
    """
    Return the deterministic one-way digest of ``secret``.

    :param secret: Plaintext secret as given to the client.
    :type secret: str
    :returns: Base64url-encoded SHA-256 digest (44 characters).
    :rtype: str
    """
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")


def short_fingerprint(value: str, length: int = 8) -> str:
    """Truncate a fingerprint for log lines."""
    return value[:length]


__all__ = ["SECRET_BYTES", "fingerprint", "generate_secret", "short_fingerprint"]
