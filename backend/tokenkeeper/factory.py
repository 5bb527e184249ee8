"""Application factory wiring configuration, logging and the token service."""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask

from tokenkeeper.core.config import BaseConfig, get_config
from tokenkeeper.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    redis_client: redis.Redis | None = None,
) -> Flask:
    """Build and configure the Flask application hosting the token service."""

    app = Flask(__name__)
    app.config.from_object(get_config() if config is None else config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from tokenkeeper.core import extensions

    extensions.init_app(app, redis_client=redis_client)

    init_logging(app)

    from tokenkeeper import cli as app_cli

    app_cli.init_app(app)

    return app
