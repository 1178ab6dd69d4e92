from typing import Callable

import pytest
from flask import Flask, url_for
from flask.testing import FlaskClient
from pytest_mock import MockFixture
from sqlalchemy.exc import OperationalError

from brotherhood.db import db
from brotherhood.model import Milestone, OnboardingStatus, User


def _location(response) -> str:  # type: ignore[no-untyped-def]
    return response.headers["Location"]


def test_anonymous_dashboard_goes_to_login(client: FlaskClient) -> None:
    response = client.get(url_for("dashboard_goal"))
    assert response.status_code == 302
    assert _location(response).endswith("/login")


def test_pages_outside_namespace_are_not_gated(client: FlaskClient) -> None:
    response = client.get(url_for("login"))
    assert response.status_code == 200

    response = client.get(url_for("health"))
    assert response.status_code == 200
    assert response.json == {"status": "ok"}


@pytest.mark.usefixtures("_authenticated_user")
def test_first_visit_provisions_record(client: FlaskClient, user: User) -> None:
    assert OnboardingStatus.latest_for(user.id) is None

    response = client.get(url_for("dashboard"))
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/welcome-video")

    status = OnboardingStatus.latest_for(user.id)
    assert status is not None
    assert status.started_at is not None
    assert status.completed_at is None
    assert not any(status.milestones.values())


@pytest.mark.usefixtures("_authenticated_user")
def test_provisioning_happens_once(client: FlaskClient, user: User) -> None:
    client.get(url_for("dashboard"))
    client.get(url_for("dashboard_welcome_video"))
    client.get(url_for("dashboard_goal"))

    count = db.session.scalar(
        db.select(db.func.count(OnboardingStatus.id)).filter_by(user_id=user.id)
    )
    assert count == 1


@pytest.mark.usefixtures("_authenticated_user")
def test_welcome_video_page_renders_for_new_user(client: FlaskClient) -> None:
    response = client.get(url_for("dashboard_welcome_video"))
    assert response.status_code == 200
    assert "Welcome video" in response.text
    assert "Step 0 of 5" in response.text


@pytest.mark.usefixtures("_authenticated_user")
def test_skipping_ahead_redirects_back(
    client: FlaskClient, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(welcome_video_watched=True)

    response = client.get(url_for("dashboard_missions"))
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/goal")

    response = client.get(url_for("dashboard_goal"))
    assert response.status_code == 200
    assert "Step 1 of 5" in response.text


@pytest.mark.usefixtures("_authenticated_user")
def test_unlocked_pages_stay_open(
    client: FlaskClient, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(training_schema_selected=True)

    assert client.get(url_for("dashboard_goal")).status_code == 200
    assert client.get(url_for("dashboard_profile")).status_code == 200

    response = client.get(url_for("dashboard_forum_new_members"))
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/nutrition-plans")


@pytest.mark.usefixtures("_authenticated_user")
def test_completed_user_sees_everything(
    client: FlaskClient, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(**dict.fromkeys(Milestone.columns(), True), onboarding_completed=True)

    for endpoint in [
        "dashboard",
        "dashboard_welcome_video",
        "dashboard_nutrition_plans",
        "dashboard_forum_new_members",
        "dashboard_academy",
        "dashboard_members",
    ]:
        response = client.get(url_for(endpoint))
        assert response.status_code == 200, endpoint
        assert "Step " not in response.text


@pytest.mark.usefixtures("_authenticated_user")
def test_newest_record_wins(
    client: FlaskClient, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(**dict.fromkeys(Milestone.columns(), True), onboarding_completed=True)
    onboarding(goal_set=True)

    response = client.get(url_for("dashboard"))
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/missions")


@pytest.mark.usefixtures("_authenticated_admin")
def test_admins_are_gated_too(client: FlaskClient) -> None:
    response = client.get(url_for("dashboard_academy"))
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/welcome-video")


@pytest.mark.usefixtures("_authenticated_user")
def test_unknown_namespace_path_redirects(
    client: FlaskClient, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(goal_set=True)
    response = client.get("/dashboard/does-not-exist")
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/missions")


@pytest.mark.usefixtures("_authenticated_user")
def test_fetch_failure_redirects_to_first_step(
    client: FlaskClient, mocker: MockFixture, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(**dict.fromkeys(Milestone.columns(), True), onboarding_completed=True)
    mocker.patch(
        "brotherhood.gate.OnboardingStatus.latest_for",
        side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
    )

    response = client.get(url_for("dashboard_academy"))
    assert response.status_code == 302
    assert _location(response).endswith("/dashboard/welcome-video")


@pytest.mark.usefixtures("_authenticated_user")
def test_fetch_failure_still_renders_first_step(
    client: FlaskClient, mocker: MockFixture, onboarding: Callable[..., OnboardingStatus]
) -> None:
    onboarding(welcome_video_watched=True, goal_set=True)
    mocker.patch(
        "brotherhood.gate.OnboardingStatus.latest_for",
        side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
    )

    response = client.get(url_for("dashboard_welcome_video"))
    assert response.status_code == 200
    assert "Step 0 of 5" in response.text


@pytest.mark.usefixtures("_authenticated_user")
def test_fetch_failure_outside_namespace_passes(client: FlaskClient, mocker: MockFixture) -> None:
    latest_for = mocker.patch(
        "brotherhood.gate.OnboardingStatus.latest_for",
        side_effect=OperationalError("SELECT", {}, Exception("connection refused")),
    )

    response = client.get(url_for("health"))
    assert response.status_code == 200
    latest_for.assert_not_called()


def test_gate_can_be_disabled(
    app: Flask, client: FlaskClient, user: User, onboarding: Callable[..., OnboardingStatus]
) -> None:
    app.config["ONBOARDING_GATE_ENABLED"] = False
    onboarding()
    with client.session_transaction() as session:
        session["user_id"] = user.id
        session["is_authenticated"] = True

    response = client.get(url_for("dashboard_academy"))
    assert response.status_code == 200


def test_session_for_deleted_user_goes_to_login(client: FlaskClient, user: User) -> None:
    with client.session_transaction() as session:
        session["user_id"] = user.id + 1000
        session["is_authenticated"] = True

    response = client.get(url_for("dashboard_goal"))
    assert response.status_code == 302
    assert _location(response).endswith("/login")
    assert OnboardingStatus.latest_for(user.id + 1000) is None
