from flask import (
    Flask,
    flash,
    redirect,
    render_template,
    session,
    url_for,
)
from werkzeug.wrappers.response import Response

from brotherhood.db import db
from brotherhood.model import User
from brotherhood.routes.forms import LoginForm


def register_auth_routes(app: Flask) -> None:
    @app.route("/login", methods=["GET", "POST"])
    def login() -> Response | str | tuple[str, int]:
        if (
            session.get("is_authenticated", False)
            and (user_id := session.get("user_id"))
            and db.session.get(User, user_id)
        ):
            return redirect(url_for("dashboard"))

        form = LoginForm()
        if form.validate_on_submit():
            user = User.by_email(form.email.data)
            if user and user.check_password(form.password.data):
                session.clear()
                session.permanent = True
                session["user_id"] = user.id
                session["is_authenticated"] = True
                app.logger.debug(f"User {user.id} logged in")
                return redirect(url_for("dashboard"))

            flash("⛔️ Invalid email or password.")
            return render_template("login.html", form=form), 401

        return render_template("login.html", form=form)

    @app.route("/logout", methods=["POST"])
    def logout() -> Response:
        session.clear()
        flash("👋 You have been logged out successfully.", "info")
        return redirect(url_for("login"))
