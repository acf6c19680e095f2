"""Unit of Work abstractions and concrete implementations.

This package re-exports the SQLAlchemy-backed units of work used by the
service layer and the SQL refresh token store.
"""

from .base import UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = [
    "UnitOfWork",
    "SQLAlchemyUnitOfWork",
    "SQLAlchemyReadOnlyUnitOfWork",
]
