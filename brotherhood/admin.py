from flask import Blueprint, abort, flash, redirect, render_template, url_for
from werkzeug.wrappers.response import Response

from .auth import admin_authentication_required
from .db import db
from .model import OnboardingStatus, User
from .routes.forms import ResetOnboardingForm
from .steps import MalformedRecordError, OnboardingSnapshot, derive_step


def reset_onboarding(user: User) -> int:
    """Delete every onboarding row of a user. Returns the number deleted.

    The next visit to the dashboard provisions a fresh record.
    """
    deleted = db.session.execute(
        db.delete(OnboardingStatus).where(OnboardingStatus.user_id == user.id)
    ).rowcount
    db.session.commit()
    return deleted or 0


def create_blueprint() -> Blueprint:
    bp = Blueprint("admin", __name__, url_prefix="/admin")

    @bp.route("/onboarding")
    @admin_authentication_required
    def onboarding_overview() -> str:
        rows = []
        for user in db.session.scalars(db.select(User).order_by(User.id)).all():
            status = OnboardingStatus.latest_for(user.id)
            step: int | None
            try:
                step = derive_step(
                    OnboardingSnapshot.from_record(status) if status is not None else None
                )
            except MalformedRecordError:
                step = None
            rows.append(
                {
                    "user": user,
                    "step": step,
                    "completed": bool(status and status.onboarding_completed),
                    "started_at": status.started_at if status else None,
                }
            )
        return render_template(
            "admin/onboarding.html", rows=rows, reset_form=ResetOnboardingForm()
        )

    @bp.route("/onboarding/<int:user_id>/reset", methods=["POST"])
    @admin_authentication_required
    def onboarding_reset(user_id: int) -> Response:
        user = db.session.get(User, user_id)
        if user is None:
            abort(404)

        form = ResetOnboardingForm()
        if not form.validate_on_submit():
            flash("Your submitted form could not be processed.")
            return redirect(url_for("admin.onboarding_overview"))

        deleted = reset_onboarding(user)
        flash(f"✅ Onboarding reset for {user.email} ({deleted} record(s) removed).", "success")
        return redirect(url_for("admin.onboarding_overview"))

    return bp
