from typing import Callable

from flask import Flask, current_app, render_template
from sqlalchemy.exc import SQLAlchemyError

from brotherhood.auth import authentication_required, current_user
from brotherhood.db import db
from brotherhood.gate import STEP_ROUTES
from brotherhood.model import OnboardingStatus
from brotherhood.steps import FIRST_STEP, MalformedRecordError, OnboardingSnapshot, derive_step
from brotherhood.utils import join_path

# endpoint, title, path relative to the gated prefix
EXTRA_PAGES: tuple[tuple[str, str, str], ...] = (
    ("dashboard_profile", "My profile", "profile"),
    ("dashboard_academy", "Academy", "academy"),
    ("dashboard_forum", "Forum", "brotherhood/forum"),
    ("dashboard_members", "Members", "brotherhood/members"),
)

STEP_ENDPOINTS = {
    0: "dashboard_welcome_video",
    1: "dashboard_goal",
    2: "dashboard_missions",
    3: "dashboard_training_schemas",
    4: "dashboard_nutrition_plans",
    5: "dashboard_forum_new_members",
}


def _user_step() -> tuple[int, bool]:
    try:
        status = OnboardingStatus.latest_for(current_user().id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.error("Error loading onboarding record", exc_info=True)
        return FIRST_STEP, False
    if status is None:
        return FIRST_STEP, False
    try:
        snapshot = OnboardingSnapshot.from_record(status)
    except MalformedRecordError as e:
        current_app.logger.error(f"Malformed onboarding record {status.id}: {e}")
        return FIRST_STEP, False
    return derive_step(snapshot), snapshot.onboarding_completed


def _page_view(title: str) -> Callable[[], str]:
    def view() -> str:
        step, completed = _user_step()
        return render_template(
            "dashboard/page.html",
            title=title,
            current_step=step,
            onboarding_completed=completed,
            steps=STEP_ROUTES,
        )

    return view


def register_dashboard_routes(app: Flask) -> None:
    prefix = app.config["ONBOARDING_GATED_PREFIX"]

    app.add_url_rule(
        join_path(prefix, ""),
        "dashboard",
        authentication_required(_page_view("Dashboard")),
    )

    for route in STEP_ROUTES:
        app.add_url_rule(
            join_path(prefix, route.path),
            STEP_ENDPOINTS[route.step],
            authentication_required(_page_view(route.title)),
        )

    for endpoint, title, path in EXTRA_PAGES:
        app.add_url_rule(
            join_path(prefix, path),
            endpoint,
            authentication_required(_page_view(title)),
        )
