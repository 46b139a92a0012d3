"""SharePool application factory."""

from __future__ import annotations

from importlib import import_module
from typing import Iterable, Optional

from flask import Flask, jsonify

from . import cli as _cli
from .clock import Clock
from .config import BaseConfig, DevConfig
from .context import create_app_context
from .errors import (
    ConcurrentConflict,
    InvalidValue,
    LotNotFound,
    PermissionDenied,
    ShareEngineError,
)
from .extensions import init_context
from .logging_config import get_logger, setup_logging

logger = get_logger(__name__)

_CONFIG_MAP = {
    "development": DevConfig,
    "default": BaseConfig,
}

_STATUS_BY_ERROR: dict[type[ShareEngineError], int] = {
    InvalidValue: 400,
    PermissionDenied: 403,
    LotNotFound: 404,
    ConcurrentConflict: 409,
}


def _resolve_config(name: str | None) -> type[BaseConfig]:
    """Return the config class for the provided environment name."""

    if not name:
        return BaseConfig
    return _CONFIG_MAP.get(name.lower(), BaseConfig)


def _blueprint_paths() -> Iterable[str]:
    yield "sharepool.blueprints.auth"
    yield "sharepool.blueprints.shares"
    yield "sharepool.blueprints.admin"


def create_app(
    config_name: str | None = None,
    *,
    config: Optional[BaseConfig] = None,
    clock: Optional[Clock] = None,
) -> Flask:
    """Create and configure the Flask application instance."""

    app = Flask(__name__, instance_relative_config=True)
    config_obj = config or _resolve_config(config_name)()
    app.config.from_object(config_obj)
    app.config["SHAREPOOL_CONFIG"] = config_obj

    setup_logging(config_obj)
    init_context(app, create_app_context(config_obj, clock=clock))
    _register_blueprints(app)
    _register_error_handlers(app)
    _cli.init_app(app)
    return app


def _register_blueprints(app: Flask) -> None:
    """Import and register all blueprints declared in `_blueprint_paths`."""

    for dotted_path in _blueprint_paths():
        module = import_module(dotted_path)
        app.register_blueprint(getattr(module, "bp"))


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ShareEngineError)
    def _engine_error(exc: ShareEngineError):
        status = next(
            (code for kind, code in _STATUS_BY_ERROR.items() if isinstance(exc, kind)),
            422,
        )
        return jsonify(exc.to_dict()), status
