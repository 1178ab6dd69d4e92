import logging
from typing import Any, Mapping, Optional, Tuple, Union

from flask import Flask, render_template, request
from werkzeug.exceptions import HTTPException, InternalServerError
from werkzeug.wrappers.response import Response

from brotherhood import admin, gate, routes
from brotherhood.cli_onboarding import register_onboarding_commands
from brotherhood.cli_user import register_user_commands
from brotherhood.config import load_config
from brotherhood.db import db, migrate
from brotherhood.version import __version__


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)

    if app.config["DEBUG"] or app.config["TESTING"]:
        app.logger.setLevel(logging.DEBUG)
    else:
        logging.basicConfig(format="%(levelname)s:%(message)s")

    app.config.from_mapping(load_config())
    if config:
        app.config.from_mapping(config)

    app.jinja_env.globals["brotherhood_version"] = __version__
    # never hand the config (and its secrets) to templates
    app.jinja_env.globals.pop("config", None)

    db.init_app(app)
    migrate.init_app(app, db)

    gate.init_app(app)
    routes.init_app(app)
    app.register_blueprint(admin.create_blueprint())

    @app.after_request
    def add_security_header(response: Response) -> Response:
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "same-origin"
        return response

    register_error_handlers(app)
    register_commands(app)

    return app


def register_commands(app: Flask) -> None:
    register_onboarding_commands(app)
    register_user_commands(app)


def register_error_handlers(app: Flask) -> None:
    # don't register these in development. we want pretty error messages in the browser
    if app.config["DEBUG"] and not app.config["TESTING"]:
        return

    @app.errorhandler(Exception)
    def handle_generic_exception(
        e: Exception,
    ) -> Union[HTTPException, Tuple[str, int], Tuple[dict[str, str], int]]:
        if isinstance(e, HTTPException):
            return e

        app.logger.error(f"Unhandled error: {e}", exc_info=True)

        http_e = InternalServerError()
        if request.path.startswith("/api/"):
            return {"error": http_e.name}, http_e.code or 500
        return render_template(
            "error.html",
            title=http_e.name,
            status_code=http_e.code,
            description=http_e.description,
        ), (http_e.code or 500)

    @app.errorhandler(HTTPException)
    def handle_http_exception(
        e: HTTPException,
    ) -> Union[Tuple[str, int], Tuple[dict[str, str], int]]:
        if request.path.startswith("/api/"):
            return {"error": e.name}, (e.code or 500)
        return render_template(
            "error.html",
            title=e.name,
            status_code=e.code,
            description=e.description,
        ), (e.code or 500)
