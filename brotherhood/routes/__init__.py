import logging

from flask import Flask, redirect, session, url_for
from werkzeug.wrappers.response import Response

from brotherhood.routes.auth import register_auth_routes
from brotherhood.routes.dashboard import register_dashboard_routes
from brotherhood.routes.onboarding import register_onboarding_routes

# Logging setup
logging.basicConfig(level=logging.INFO, format="%(asctime)s:%(levelname)s:%(message)s")


def init_app(app: Flask) -> None:
    register_auth_routes(app)
    register_dashboard_routes(app)
    register_onboarding_routes(app)

    @app.route("/")
    def index() -> Response:
        if session.get("is_authenticated", False):
            return redirect(url_for("dashboard"))
        return redirect(url_for("login"))

    @app.route("/health.json")
    def health() -> dict[str, str]:
        return {"status": "ok"}
