# session_auth/services/refresh_tokens/service.py
from __future__ import annotations

import logging
from datetime import UTC, datetime

from session_auth.services._shared.errors import (
    ExpiredTokenError,
    InvalidTokenError,
    RevokedTokenError,
)
from session_auth.services._shared.ports import RefreshTokenRecord, RefreshTokenStore
from session_auth.services.refresh_tokens.dto import (
    RefreshTokenConfig,
    RevokeOutcome,
    RotationOut,
)
from session_auth.services.tokens.codec import fingerprint, generate_secret, short_fingerprint

log = logging.getLogger(__name__)


class RefreshTokenService:
    """
    Lifecycle of opaque, single-use refresh tokens.

    States per token: ``ACTIVE`` -> ``EXPIRED`` (derived from the clock) or
    ``ACTIVE`` -> ``REVOKED`` (stored flag). Both are terminal.

    Only fingerprints reach the store; plaintext secrets exist just long
    enough to be returned to the caller.
    """

    def __init__(self, *, store: RefreshTokenStore, cfg: RefreshTokenConfig) -> None:
        """
        :param store: Compare-and-set capable refresh token store.
        :param cfg: TTL and reuse policy.
        """
        self.store = store
        self.cfg = cfg

    # ------------------------------------------------------------------ #
    # Issuance
    # ------------------------------------------------------------------ #

    def generate(self, owner_id: int) -> str:
        """
        Create and persist a new ACTIVE token for ``owner_id``.

        :returns: Plaintext secret (the only copy).
        :raises StorageError: If persistence fails; nothing is returned then.
        """
        secret, record = self._new_record(owner_id, self.now_utc())
        self.store.create(record)
        log.info(
            "refresh.issued",
            extra={"user_id": owner_id, "fp": short_fingerprint(record.fingerprint)},
        )
        return secret

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    def validate(self, secret: str) -> int:
        """
        Resolve ``secret`` to its owner.

        :raises InvalidTokenError: Unknown or forged secret.
        :raises RevokedTokenError: Revoked (checked before expiry).
        :raises ExpiredTokenError: Past ``expires_at``.
        """
        record = self._lookup(fingerprint(secret))
        self._ensure_active(record, self.now_utc())
        return record.owner_id

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, secret: str) -> RotationOut:
        """
        Exchange ``secret`` for a new one, revoking the old token.

        Security
        --------
        - Same failure taxonomy as :meth:`validate`.
        - The store revokes the old row conditionally and inserts the new row
          in one step, so of two concurrent calls with the same secret at most
          one succeeds; the other raises :class:`RevokedTokenError`.
        - Presenting an already revoked secret is logged as reuse and, when
          ``revoke_all_on_reuse`` is set, revokes every session of the owner.
        """
        old_fp = fingerprint(secret)
        now = self.now_utc()
        record = self._lookup(old_fp)
        try:
            self._ensure_active(record, now)
        except RevokedTokenError:
            self._on_reuse(record)
            raise

        new_secret, new_record = self._new_record(record.owner_id, now)
        rotated = self.store.rotate(
            old_fingerprint=old_fp,
            owner_id=record.owner_id,
            new_record=new_record,
            now=now,
        )
        if not rotated:
            # Lost the race: someone else consumed the token between our read and the CAS.
            log.warning(
                "refresh.rejected",
                extra={
                    "reason": "concurrent_rotation",
                    "user_id": record.owner_id,
                    "fp": short_fingerprint(old_fp),
                },
            )
            raise RevokedTokenError("refresh token already used")

        log.info(
            "refresh.rotated",
            extra={"user_id": record.owner_id, "fp": short_fingerprint(new_record.fingerprint)},
        )
        return RotationOut(refresh_token=new_secret, owner_id=record.owner_id)

    # ------------------------------------------------------------------ #
    # Revocation
    # ------------------------------------------------------------------ #

    def revoke(self, secret: str) -> RevokeOutcome:
        """
        Revoke a single token. Idempotent.

        :returns: What happened; unknown and already revoked tokens are not errors.
        """
        fp = fingerprint(secret)
        if self.store.revoke_if_active(fp):
            log.info("refresh.revoked", extra={"fp": short_fingerprint(fp)})
            return RevokeOutcome.REVOKED
        if self.store.get_by_fingerprint(fp) is None:
            return RevokeOutcome.NOT_FOUND
        return RevokeOutcome.ALREADY_REVOKED

    def revoke_all_for_user(self, owner_id: int) -> int:
        """Revoke every ACTIVE token of ``owner_id``; returns how many flipped."""
        count = self.store.revoke_all_for_user(owner_id)
        log.info("refresh.revoked_all", extra={"user_id": owner_id, "count": count})
        return count

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _new_record(self, owner_id: int, now: datetime) -> tuple[str, RefreshTokenRecord]:
        secret = generate_secret()
        record = RefreshTokenRecord(
            fingerprint=fingerprint(secret),
            owner_id=owner_id,
            issued_at=now,
            expires_at=now + self.cfg.ttl,
        )
        return secret, record

    def _lookup(self, fp: str) -> RefreshTokenRecord:
        record = self.store.get_by_fingerprint(fp)
        if record is None:
            # "never existed" and "forged" must look the same to callers
            log.info("refresh.rejected", extra={"reason": "not_found", "fp": short_fingerprint(fp)})
            raise InvalidTokenError("invalid refresh token")
        return record

    def _ensure_active(self, record: RefreshTokenRecord, now: datetime) -> None:
        if record.revoked:
            log.info("refresh.rejected", extra={"reason": "revoked", "user_id": record.owner_id})
            raise RevokedTokenError("refresh token revoked")
        if record.is_expired(now):
            log.info("refresh.rejected", extra={"reason": "expired", "user_id": record.owner_id})
            raise ExpiredTokenError("refresh token expired")

    def _on_reuse(self, record: RefreshTokenRecord) -> None:
        log.warning(
            "refresh.reuse_detected",
            extra={"user_id": record.owner_id, "fp": short_fingerprint(record.fingerprint)},
        )
        if self.cfg.revoke_all_on_reuse:
            self.revoke_all_for_user(record.owner_id)

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(UTC)
