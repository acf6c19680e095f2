from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Protocol

from session_auth.services._shared.errors import FingerprintCollisionError


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Read-model for a stored refresh token.

    :ivar fingerprint: One-way digest of the secret (primary lookup key).
    :ivar owner_id: User the token authenticates.
    :ivar issued_at: Issuance timestamp (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar revoked: Whether the token was revoked (monotonic false -> true).
    """

    fingerprint: str
    owner_id: int
    issued_at: datetime
    expires_at: datetime
    revoked: bool = False

    def is_expired(self, now: datetime) -> bool:
        """Return ``True`` once ``now`` is strictly past ``expires_at``."""
        return now > self.expires_at

    def is_active(self, now: datetime) -> bool:
        return not self.revoked and not self.is_expired(now)


class RefreshTokenStore(Protocol):
    """
    Durable mapping from fingerprint to refresh-token state.

    Write operations on the ``revoked`` flag MUST be compare-and-set, and
    ``rotate`` MUST be atomic: either the old record is revoked *and* the new
    one is stored, or nothing changes.
    """

    def create(self, record: RefreshTokenRecord) -> None:
        """
        Insert a new record.

        :raises FingerprintCollisionError: If the fingerprint already exists.
        :raises StorageError: On any backend failure.
        """

    def get_by_fingerprint(self, fingerprint: str) -> RefreshTokenRecord | None:
        """Fetch a record snapshot, or ``None`` when unknown."""

    def revoke_if_active(self, fingerprint: str, *, owner_id: int | None = None) -> bool:
        """
        Flip ``revoked`` to ``True`` only if it is currently ``False``.

        :returns: ``True`` when this call performed the transition.
        """

    def rotate(
        self,
        *,
        old_fingerprint: str,
        owner_id: int,
        new_record: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        """
        Atomically revoke ``old_fingerprint`` and insert ``new_record``.

        The old record must be owned by ``owner_id``, not revoked and not
        expired at ``now``. When that conditional revoke affects zero rows,
        nothing is written and ``False`` is returned.
        """

    def revoke_all_for_user(self, owner_id: int) -> int:
        """
        Revoke every non-revoked record of ``owner_id``.

        :returns: Number of records flipped.
        """


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    In-memory refresh token store with atomic rotation behavior.

    .. note::
       Uses a threading lock so concurrent rotations behave like a real
       compare-and-set backend in unit tests.
    """

    def __init__(self) -> None:
        self._by_fp: dict[str, RefreshTokenRecord] = {}
        self._lock = threading.Lock()

    def create(self, record: RefreshTokenRecord) -> None:
        with self._lock:
            self._insert(record)

    def _insert(self, record: RefreshTokenRecord) -> None:
        if record.fingerprint in self._by_fp:
            raise FingerprintCollisionError()
        self._by_fp[record.fingerprint] = record

    def get_by_fingerprint(self, fingerprint: str) -> RefreshTokenRecord | None:
        with self._lock:
            return self._by_fp.get(fingerprint)

    def revoke_if_active(self, fingerprint: str, *, owner_id: int | None = None) -> bool:
        with self._lock:
            rec = self._by_fp.get(fingerprint)
            if rec is None or rec.revoked:
                return False
            if owner_id is not None and rec.owner_id != owner_id:
                return False
            self._by_fp[fingerprint] = replace(rec, revoked=True)
            return True

    def rotate(
        self,
        *,
        old_fingerprint: str,
        owner_id: int,
        new_record: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        with self._lock:
            rec = self._by_fp.get(old_fingerprint)
            if rec is None or rec.owner_id != owner_id or not rec.is_active(now):
                return False
            if new_record.fingerprint in self._by_fp:
                raise FingerprintCollisionError()
            self._by_fp[old_fingerprint] = replace(rec, revoked=True)
            self._by_fp[new_record.fingerprint] = new_record
            return True

    def revoke_all_for_user(self, owner_id: int) -> int:
        with self._lock:
            hits = [
                fp for fp, rec in self._by_fp.items() if rec.owner_id == owner_id and not rec.revoked
            ]
            for fp in hits:
                self._by_fp[fp] = replace(self._by_fp[fp], revoked=True)
            return len(hits)

    def records_for(self, owner_id: int) -> list[RefreshTokenRecord]:
        """Return every record owned by ``owner_id`` (test helper)."""
        with self._lock:
            return [rec for rec in self._by_fp.values() if rec.owner_id == owner_id]
