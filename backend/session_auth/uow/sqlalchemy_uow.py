"""
SQLAlchemy implementation of UnitOfWork for Flask.
"""

from __future__ import annotations

from contextlib import suppress

from sqlalchemy import event, text
from sqlalchemy.exc import InvalidRequestError, SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction, scoped_session

from session_auth.core.extensions import db
from session_auth.repositories import RefreshTokenRepository, UserRepository
from session_auth.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW using the Flask-scoped session.

    Commits on a clean exit, rolls back when the block raises. Rotation relies
    on this: the conditional revoke and the insert of the replacement token
    either commit together or not at all.
    """

    def __init__(self, session: Session | None = None) -> None:
        """:param session: Session to run on; the Flask-scoped one by default."""
        super().__init__(session=session if session is not None else db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only Unit of Work backed by the Flask-scoped SQLAlchemy session.

    - Owns a fresh transaction when possible and always rolls it back on exit.
    - Attaches to an already running transaction otherwise (sqlite test
      fixtures), inheriting its permissions.
    - Blocks ORM flushes of new/dirty/deleted objects while active.
    - On PostgreSQL, issues ``SET TRANSACTION READ ONLY`` for owned transactions.
    - Disallows ``commit()``.
    """

    def __init__(
        self, session: Session | None = None, *, enforce_db_readonly: bool = True
    ) -> None:
        super().__init__(session=session if session is not None else db.session)
        self.enforce_db_readonly = enforce_db_readonly
        self._txn_ctx: SessionTransaction | None = None
        self._guarded: Session | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        self._txn_ctx = None
        try:
            txn_ctx = self.session.begin()
            txn_ctx.__enter__()
            self._txn_ctx = txn_ctx
        except InvalidRequestError:
            # A transaction is already begun on this Session; attach to it.
            pass

        # Listening on a scoped_session would guard every session of its factory.
        session = self.session
        self._guarded = session() if isinstance(session, scoped_session) else session
        event.listen(self._guarded, "before_flush", self._before_flush)

        if self._txn_ctx is not None and self.enforce_db_readonly:
            dialect = self.session.connection().dialect.name
            if dialect == "postgresql":
                try:
                    self.session.execute(text("SET TRANSACTION READ ONLY"))
                except SQLAlchemyError:
                    # Guards still apply; the database just does not enforce it.
                    pass
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._txn_ctx is not None:
                with suppress(SQLAlchemyError):
                    self.session.rollback()
                try:
                    self._txn_ctx.__exit__(exc_type, exc, tb)
                finally:
                    self._txn_ctx = None
        finally:
            if self._guarded is not None:
                with suppress(InvalidRequestError):
                    event.remove(self._guarded, "before_flush", self._before_flush)
                self._guarded = None

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always, to prevent accidental writes.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    @staticmethod
    def _before_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError(
                "Read-only UnitOfWork: ORM flush blocked (new/dirty/deleted objects present)."
            )
