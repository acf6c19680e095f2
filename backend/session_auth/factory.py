"""Application factory wiring Flask extensions and blueprints."""

from __future__ import annotations

from flask import Flask

from session_auth.core.config import BaseConfig, ProductionConfig, get_config, validate_config
from session_auth.core.logger import configure_logging
from session_auth.core.logger import init_app as init_logging
from session_auth.services._shared.ports import RefreshTokenStore


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    refresh_store: RefreshTokenStore | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config class, import path or object; ``APP_ENV`` when ``None``.
    :param refresh_store: Replaces the configured refresh token backend.
    :raises ConfigurationError: When token settings are unsafe.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    config_obj = get_config() if config is None else config
    app.config.from_object(config_obj)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    strict = isinstance(config_obj, type) and issubclass(config_obj, ProductionConfig)
    validate_config(app.config, strict=strict)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Proxy headers if running behind a reverse proxy
    from session_auth.core import proxy

    proxy.init_app(app)

    from session_auth.core import extensions

    extensions.init_app(app)

    from session_auth.core import container

    container.init_app(app, store=refresh_store)

    init_logging(app)

    from session_auth.core import cors

    cors.init_app(app)

    from session_auth.api import init_app as init_api

    init_api(app)

    from session_auth.core import errors

    errors.init_app(app)

    from session_auth import cli as app_cli

    app_cli.init_app(app)

    return app
