"""SQL-backed :class:`RefreshTokenStore` (the default backend)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from session_auth.models.refresh_token import RefreshToken
from session_auth.services._shared.errors import (
    FingerprintCollisionError,
    StorageError,
    violates,
)
from session_auth.services._shared.ports import RefreshTokenRecord, RefreshTokenStore
from session_auth.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)

FINGERPRINT_CONSTRAINT = "uq_refresh_tokens_fingerprint"


def _is_fingerprint_collision(exc: IntegrityError) -> bool:
    # SQLite reports the column, PostgreSQL/MySQL the constraint name.
    return violates(exc, FINGERPRINT_CONSTRAINT) or violates(exc, "refresh_tokens.fingerprint")


def _to_record(row: RefreshToken) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        fingerprint=row.fingerprint,
        owner_id=row.user_id,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        revoked=bool(row.revoked),
    )


def _to_row(record: RefreshTokenRecord) -> RefreshToken:
    return RefreshToken(
        fingerprint=record.fingerprint,
        user_id=record.owner_id,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        revoked=record.revoked,
    )


class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Refresh token store over the ``refresh_tokens`` table.

    Every write runs in its own read-write Unit of Work. :meth:`rotate` issues
    the conditional ``UPDATE`` and the ``INSERT`` of the replacement inside the
    same transaction, so a failed insert rolls the revocation back.

    :param uow_factory: Builds the read-write Unit of Work (overridable in tests).
    :param ro_uow_factory: Builds the read-only Unit of Work.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        ro_uow_factory: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self._uow = uow_factory
        self._ro_uow = ro_uow_factory

    def create(self, record: RefreshTokenRecord) -> None:
        try:
            with self._uow() as uow:
                uow.refresh_tokens.add(_to_row(record))
        except IntegrityError as exc:
            if _is_fingerprint_collision(exc):
                raise FingerprintCollisionError() from exc
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    def get_by_fingerprint(self, fingerprint: str) -> RefreshTokenRecord | None:
        try:
            with self._ro_uow() as uow:
                row = uow.refresh_tokens.get_by_fingerprint(fingerprint)
                return _to_record(row) if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    def revoke_if_active(self, fingerprint: str, *, owner_id: int | None = None) -> bool:
        try:
            with self._uow() as uow:
                return uow.refresh_tokens.revoke_if_active(fingerprint, owner_id=owner_id) == 1
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    def rotate(
        self,
        *,
        old_fingerprint: str,
        owner_id: int,
        new_record: RefreshTokenRecord,
        now: datetime,
    ) -> bool:
        try:
            with self._uow() as uow:
                flipped = uow.refresh_tokens.revoke_if_active(
                    old_fingerprint, owner_id=owner_id, not_expired_at=now
                )
                if flipped != 1:
                    return False
                uow.refresh_tokens.add(_to_row(new_record))
                return True
        except IntegrityError as exc:
            if _is_fingerprint_collision(exc):
                raise FingerprintCollisionError() from exc
            raise StorageError() from exc
        except SQLAlchemyError as exc:
            raise StorageError() from exc

    def revoke_all_for_user(self, owner_id: int) -> int:
        try:
            with self._uow() as uow:
                return uow.refresh_tokens.revoke_all_for_user(owner_id)
        except SQLAlchemyError as exc:
            raise StorageError() from exc
