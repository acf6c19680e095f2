"""Per-application wiring of token services and their storage backend."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import cast

from flask import Flask, current_app

from session_auth.services._shared.ports import RefreshTokenStore
from session_auth.services.auth import AuthService
from session_auth.services.refresh_tokens import RefreshTokenConfig, RefreshTokenService
from session_auth.services.tokens import AccessTokenIssuer

EXTENSION_KEY = "session_auth"


@dataclass(frozen=True, slots=True)
class Services:
    """Service singletons shared by every request of one app."""

    access_tokens: AccessTokenIssuer
    refresh_tokens: RefreshTokenService
    auth: AuthService


def build_refresh_store(app: Flask) -> RefreshTokenStore:
    """Return the store selected by ``REFRESH_TOKEN_BACKEND``."""
    backend = app.config.get("REFRESH_TOKEN_BACKEND", "sql")
    if backend == "redis":
        from session_auth.core.extensions import get_redis
        from session_auth.infra.redis import RedisRefreshTokenStore

        retention = int(app.config.get("REFRESH_TOKEN_RETENTION_SECONDS", 0))
        return RedisRefreshTokenStore(
            r=get_redis(),
            retention=timedelta(seconds=retention) if retention > 0 else None,
        )

    from session_auth.infra.sqlalchemy import SQLAlchemyRefreshTokenStore

    return SQLAlchemyRefreshTokenStore()


def init_app(app: Flask, *, store: RefreshTokenStore | None = None) -> Services:
    """
    Build the services from config and register them on ``app.extensions``.

    :param store: Overrides the configured backend (tests).
    """
    from session_auth.infra.jwt import JWTTokenProvider

    access = AccessTokenIssuer(
        provider=JWTTokenProvider(),
        ttl=timedelta(seconds=int(app.config["ACCESS_TOKEN_TTL_SECONDS"])),
    )
    refresh = RefreshTokenService(
        store=store or build_refresh_store(app),
        cfg=RefreshTokenConfig(
            ttl=timedelta(seconds=int(app.config["REFRESH_TOKEN_TTL_SECONDS"])),
            revoke_all_on_reuse=bool(app.config.get("REFRESH_REUSE_REVOKES_ALL", False)),
        ),
    )
    services = Services(
        access_tokens=access,
        refresh_tokens=refresh,
        auth=AuthService(access_tokens=access, refresh_tokens=refresh),
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def services() -> Services:
    """Return the services of the current app."""
    return cast(Services, current_app.extensions[EXTENSION_KEY])
