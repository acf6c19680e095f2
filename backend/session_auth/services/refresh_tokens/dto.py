"""DTOs for RefreshTokenService."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum, auto


class RevokeOutcome(Enum):
    """Result of a single-token revocation."""

    REVOKED = auto()
    ALREADY_REVOKED = auto()
    NOT_FOUND = auto()


@dataclass(frozen=True, slots=True)
class RefreshTokenConfig:
    """
    Refresh token policy.

    :param ttl: Lifetime of a newly issued refresh token.
    :type ttl: timedelta
    :param revoke_all_on_reuse: Revoke every session of the owner when an
        already revoked token is presented for rotation.
    :type revoke_all_on_reuse: bool
    """

    ttl: timedelta
    revoke_all_on_reuse: bool = False


@dataclass(frozen=True, slots=True)
class RotationOut:
    """
    Output of a successful rotation.

    :param refresh_token: New plaintext secret for the client.
    :type refresh_token: str
    :param owner_id: User the rotated session belongs to.
    :type owner_id: int
    """

    refresh_token: str
    owner_id: int
