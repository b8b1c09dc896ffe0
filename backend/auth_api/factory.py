"""Flask application factory for the auth API."""

from __future__ import annotations

from flask import Flask

from auth_api import cli, infra
from auth_api.api import init_app as init_routes
from auth_api.core import cors, errors, extensions, logger, proxy
from auth_api.core.config import BaseConfig, get_config


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Create the app.

    :param config: Settings object or import path; ``None`` picks the class
        named by ``APP_ENV``.
    :param instance_relative_config: Also load ``instance/<filename>`` when present.
    :param instance_config_filename: Instance settings file name.
    """
    app = Flask(__name__, instance_relative_config=instance_relative_config)
    app.config.from_object(config if config is not None else get_config())
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    logger.configure_logging(app.config.get("LOG_LEVEL", "INFO"), service="auth-api")

    # Order matters: ProxyFix before anything reads remote_addr, stores after
    # extensions, error handlers after the blueprints they cover.
    proxy.init_app(app)
    extensions.init_app(app)
    logger.init_app(app)
    cors.init_app(app)
    infra.init_app(app)
    init_routes(app)
    errors.init_app(app)
    cli.init_app(app)
    return app
