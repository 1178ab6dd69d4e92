from typing import Any

from flask import Flask, current_app, request
from sqlalchemy.exc import SQLAlchemyError

from brotherhood.auth import authentication_required, current_user
from brotherhood.db import db
from brotherhood.gate import StepTable
from brotherhood.model import Milestone, OnboardingStatus
from brotherhood.steps import MalformedRecordError, OnboardingSnapshot, derive_step

HTTP_BAD_REQUEST = 400
HTTP_INTERNAL_SERVER_ERROR = 500

STEP_MILESTONES = {
    0: Milestone.WELCOME_VIDEO_WATCHED,
    1: Milestone.GOAL_SET,
    2: Milestone.MISSIONS_SELECTED,
    3: Milestone.TRAINING_SCHEMA_SELECTED,
    4: Milestone.NUTRITION_PLAN_SELECTED,
    5: Milestone.CHALLENGE_STARTED,
}

# training and nutrition plans are optional
SKIPPABLE_STEPS = frozenset({3, 4})

ACTIONS = frozenset({"complete_step", "skip_step"})


def status_payload(status: OnboardingStatus | None, table: StepTable) -> dict[str, Any]:
    snapshot = OnboardingSnapshot.from_record(status) if status is not None else None
    step = derive_step(snapshot)
    is_completed = bool(snapshot and snapshot.onboarding_completed)
    if status is not None:
        milestones = status.milestones
    else:
        milestones = dict.fromkeys(Milestone.columns(), False)

    return {
        "current_step": step,
        "is_completed": is_completed,
        "milestones": milestones,
        "steps": [
            {"id": route.step, "title": route.title, "path": table.canonical_path(route.step)}
            for route in table.routes
        ],
        "next_path": table.home if is_completed else table.canonical_path(step),
    }


def apply_action(status: OnboardingStatus, step: int, action: str) -> None:
    """Set the milestone behind `step` and finish onboarding once all are set.

    Raises ValueError for actions that do not apply to the step.
    """
    if step not in STEP_MILESTONES:
        raise ValueError(f"Unknown onboarding step: {step!r}")
    if action not in ACTIONS:
        raise ValueError(f"Unknown onboarding action: {action!r}")
    if action == "skip_step" and step not in SKIPPABLE_STEPS:
        raise ValueError(f"Onboarding step {step} cannot be skipped")

    status.complete_milestone(STEP_MILESTONES[step])
    if status.all_milestones_reached:
        status.mark_completed()


def register_onboarding_routes(app: Flask) -> None:
    def step_table() -> StepTable:
        return StepTable(current_app.config["ONBOARDING_GATED_PREFIX"])

    @app.route("/api/onboarding", methods=["GET"])
    @authentication_required
    def onboarding_status() -> dict[str, Any] | tuple[dict[str, Any], int]:
        status = OnboardingStatus.latest_for(current_user().id)
        try:
            return status_payload(status, step_table())
        except MalformedRecordError as e:
            app.logger.error(f"Malformed onboarding record: {e}")
            return {"error": "Onboarding status is unavailable"}, HTTP_INTERNAL_SERVER_ERROR

    @app.route("/api/onboarding", methods=["POST"])
    @authentication_required
    def onboarding_update() -> dict[str, Any] | tuple[dict[str, Any], int]:
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return {"error": "A JSON object body is required"}, HTTP_BAD_REQUEST

        step = body.get("step")
        action = body.get("action")
        if not isinstance(step, int) or isinstance(step, bool) or not isinstance(action, str):
            return {"error": "Both 'step' (int) and 'action' (str) are required"}, HTTP_BAD_REQUEST

        user = current_user()
        status = OnboardingStatus.latest_for(user.id)
        if status is None:
            status = OnboardingStatus(user_id=user.id)
            db.session.add(status)

        try:
            apply_action(status, step, action)
        except ValueError as e:
            db.session.rollback()
            return {"error": str(e)}, HTTP_BAD_REQUEST

        try:
            db.session.commit()
            # another request may have set the remaining milestones concurrently
            if not status.onboarding_completed and OnboardingStatus.complete_if_ready(status.id):
                db.session.commit()
                app.logger.info(f"Onboarding completed for user {user.id}")
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.error(f"Error updating onboarding for user {user.id}", exc_info=True)
            return {"error": "Failed to update onboarding status"}, HTTP_INTERNAL_SERVER_ERROR

        app.logger.info(f"Onboarding {action} for user {user.id}, step {step}")
        return status_payload(status, step_table())
