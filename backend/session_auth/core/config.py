"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Signing secrets that must never reach production.
PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset(
    {"", "CHANGE_ME", "CHANGE_ME_JWT", "secret", "changeme", "dev-secret"}
)

REFRESH_BACKENDS: Final[tuple[str, ...]] = ("sql", "redis")

# Loads .env in development (no-op when the file is missing)
load_dotenv()


class ConfigurationError(RuntimeError):
    """Raised at app creation when settings are unsafe or inconsistent."""


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def env_int(name: str, default: int) -> int:
    """Parse an integer from an environment variable, ``default`` when unset."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return int(val)


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    JWT_SECRET_KEY: str
        Key used by ``flask-jwt-extended`` for signing access tokens.
    ACCESS_TOKEN_TTL_SECONDS: int
        Access token lifetime; must stay well below the refresh lifetime.
    REFRESH_TOKEN_TTL_SECONDS: int
        Refresh token lifetime.
    REFRESH_TOKEN_BACKEND: str
        ``"sql"`` (default) or ``"redis"``.
    REFRESH_REUSE_REVOKES_ALL: bool
        Revoke every session of a user when a rotated token is replayed.
    REFRESH_TOKEN_RETENTION_SECONDS: int
        Redis backend only: how long a token record is kept past its expiry;
        ``0`` keeps it until an external cleanup removes it.
    PASSWORD_HASH_METHOD: str
        Werkzeug hashing method string (carries the work factor).
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).
    CORS_ORIGINS: str
        Comma-separated list of allowed origins for CORS.
    AUTH_LOGIN_RATE_LIMIT: str
        Flask-Limiter expression applied to the login endpoint.

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = os.getenv("API_BASE_PREFIX", "/api")

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = "HS256"

    # Token lifetimes
    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 900)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 604800)

    # Refresh token storage
    REFRESH_TOKEN_BACKEND = os.getenv("REFRESH_TOKEN_BACKEND", "sql").strip().lower()
    REFRESH_REUSE_REVOKES_ALL = env_bool("REFRESH_REUSE_REVOKES_ALL", False)
    REFRESH_TOKEN_RETENTION_SECONDS = env_int("REFRESH_TOKEN_RETENTION_SECONDS", 0)
    REDIS_URL = os.getenv("REDIS_URL")

    # Rate limiting (Flask-Limiter reads RATELIMIT_* keys itself)
    AUTH_LOGIN_RATE_LIMIT = os.getenv("AUTH_LOGIN_RATE_LIMIT", "5 per minute")
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_HEADERS_ENABLED = True

    # Passwords
    PASSWORD_HASH_METHOD = os.getenv("PASSWORD_HASH_METHOD", "scrypt")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging, CORS & proxy
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "http://localhost:5173")
    USE_PROXYFIX = env_bool("USE_PROXYFIX", True)

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development."""

    DEBUG = env_bool("FLASK_DEBUG", True)
    CORS_MAX_AGE = 600  # 10 minutes


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Uses the cheap ``pbkdf2:sha256:1000`` hash method to keep tests fast.
    - Propagates exceptions so pytest can surface tracebacks directly.
    """

    TESTING = True
    DEBUG = False
    JWT_SECRET_KEY = "testing-jwt-secret-key-with-enough-bytes"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    REFRESH_TOKEN_BACKEND = "sql"
    REFRESH_REUSE_REVOKES_ALL = False
    PASSWORD_HASH_METHOD = "pbkdf2:sha256:1000"
    AUTH_LOGIN_RATE_LIMIT = "1000 per minute"
    RATELIMIT_STORAGE_URI = "memory://"
    USE_PROXYFIX = False
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Refuses to boot with a placeholder signing key, see :func:`validate_config`.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(config: Mapping[str, Any], *, strict: bool) -> None:
    """Reject unsafe token settings.

    :param config: Loaded Flask config.
    :param strict: When ``True`` (production) also refuse placeholder secrets.
    :raises ConfigurationError: On the first offending setting.
    """
    access_ttl = int(config.get("ACCESS_TOKEN_TTL_SECONDS", 0))
    refresh_ttl = int(config.get("REFRESH_TOKEN_TTL_SECONDS", 0))
    if access_ttl <= 0 or refresh_ttl <= 0:
        raise ConfigurationError("token TTLs must be positive")
    if access_ttl >= refresh_ttl:
        raise ConfigurationError(
            "ACCESS_TOKEN_TTL_SECONDS must be shorter than REFRESH_TOKEN_TTL_SECONDS"
        )

    if int(config.get("REFRESH_TOKEN_RETENTION_SECONDS", 0)) < 0:
        raise ConfigurationError("REFRESH_TOKEN_RETENTION_SECONDS must not be negative")

    backend = config.get("REFRESH_TOKEN_BACKEND", "sql")
    if backend not in REFRESH_BACKENDS:
        raise ConfigurationError(f"unknown REFRESH_TOKEN_BACKEND: {backend!r}")

    if strict:
        secret = config.get("JWT_SECRET_KEY") or ""
        if secret.strip() in PLACEHOLDER_SECRETS:
            raise ConfigurationError("JWT_SECRET_KEY is missing or a placeholder")
