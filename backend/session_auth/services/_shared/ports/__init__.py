"""
session_auth.services._shared.ports
===================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token management infrastructure.

Modules
-------
- :mod:`token_provider`:
    Defines :class:`~.TokenProvider`: abstraction for signing and decoding
    access tokens.

- :mod:`refresh_token_store`:
    Defines :class:`~.RefreshTokenStore` and :class:`~.RefreshTokenRecord`:
    the compare-and-set storage contract behind refresh-token rotation.

Design Notes
------------
Concrete adapters (SQL, Redis, flask-jwt-extended) live under
``session_auth.infra``. The in-memory/stub doubles kept here are used by the
unit tests.
"""

from __future__ import annotations

from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenRecord,
    RefreshTokenStore,
)
from .token_provider import StubTokenProvider, TokenProvider

__all__ = [
    "TokenProvider",
    "RefreshTokenStore",
    "RefreshTokenRecord",
    "InMemoryRefreshTokenStore",
    "StubTokenProvider",
]
