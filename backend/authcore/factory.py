"""Application factory wiring Flask extensions, blueprints and services."""

from __future__ import annotations

from flask import Flask

from authcore.core.config import BaseConfig, get_config
from authcore.core.logger import configure_logging, init_app as init_logging
from authcore.services._shared.ports import Notifier


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    notifier: Notifier | None = None,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object or import path; defaults to ``APP_ENV``.
    :param notifier: Email adapter override. Defaults to SMTP built from config.
    :raises ValueError: When the authentication secrets are invalid.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from authcore.core import proxy

    proxy.init_app(app)

    from authcore.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from authcore.api import init_app as init_api

    init_api(app)

    from authcore.core import errors

    errors.init_app(app)

    from authcore.services import registry

    registry.init_app(app, notifier=notifier)

    from authcore import cli as app_cli

    app_cli.init_app(app)

    return app
