# session_auth/services/_shared/base.py
from __future__ import annotations

import logging

from session_auth.core import errors as api_errors
from session_auth.services._shared.errors import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    StorageError,
    TokenError,
)
from session_auth.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

log = logging.getLogger(__name__)

REFRESH_FAILURE_MESSAGE = "invalid or expired refresh token"


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    """

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self, *, enforce_db_readonly: bool = True) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param enforce_db_readonly: Apply ``SET TRANSACTION READ ONLY`` when supported.
        :type enforce_db_readonly: bool
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(enforce_db_readonly=enforce_db_readonly)

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        Token failures collapse into one message whatever the internal reason
        (not found, expired, revoked) so clients get no token-state oracle.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, TokenError):
            # → 401, uniform across reasons
            return api_errors.Unauthorized(REFRESH_FAILURE_MESSAGE)

        if isinstance(exc, InvalidCredentialsError):
            return api_errors.Unauthorized(str(exc))

        if isinstance(exc, ConflictError):
            # Duplicate email is reported as a plain validation failure.
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))

        if isinstance(exc, StorageError):
            log.error("service.storage_error", exc_info=exc)
            return api_errors.InternalServerError()

        # Any other ServiceError subclass → 400 Bad Request
        if isinstance(exc, ServiceError):
            return api_errors.APIError(
                message=str(exc),
                status_code=400,
                code="bad_request",
            )

        # Fallback: return untouched (will bubble up to Flask handler)
        return exc
