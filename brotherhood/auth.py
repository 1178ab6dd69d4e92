from functools import wraps
from typing import Any, Callable

from flask import abort, current_app, flash, redirect, session, url_for

from brotherhood.model import User

from .db import db


def authentication_required(func: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(func)
    def decorated_function(*args: Any, **kwargs: Any) -> Any:
        if "user_id" not in session or not session.get("is_authenticated", False):
            flash("👉 Please log in first.")
            return redirect(url_for("login"))

        if db.session.get(User, session["user_id"]) is None:
            session.clear()
            flash("🫥 User not found. Please log in again.")
            return redirect(url_for("login"))

        return current_app.ensure_sync(func)(*args, **kwargs)

    return decorated_function


def admin_authentication_required(func: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(func)
    @authentication_required
    def decorated_function(*args: Any, **kwargs: Any) -> Any:
        user = db.session.get(User, session["user_id"])
        if not user or not user.is_admin:
            abort(403)
        return current_app.ensure_sync(func)(*args, **kwargs)

    return decorated_function


def current_user() -> User:
    """The logged in user. Only valid behind `authentication_required`."""
    user = db.session.get(User, session["user_id"])
    if user is None:
        abort(401)
    return user
