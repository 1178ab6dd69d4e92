from flask import url_for
from flask.testing import FlaskClient

from brotherhood.model import User


def test_index_redirects_to_login(client: FlaskClient) -> None:
    response = client.get(url_for("index"))
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/login")


def test_login_lands_on_onboarding(client: FlaskClient, user: User, user_password: str) -> None:
    response = client.post(
        url_for("login"),
        data={"email": user.email, "password": user_password},
        follow_redirects=True,
    )
    assert response.status_code == 200
    assert "Welcome video" in response.text
    assert response.request.path == "/dashboard/welcome-video"

    with client.session_transaction() as session:
        assert session["user_id"] == user.id
        assert session["is_authenticated"] is True


def test_login_wrong_password(client: FlaskClient, user: User) -> None:
    response = client.post(
        url_for("login"), data={"email": user.email, "password": "not-the-password"}
    )
    assert response.status_code == 401
    assert "Invalid email or password." in response.text


def test_logout(client: FlaskClient, user: User, user_password: str) -> None:
    client.post(url_for("login"), data={"email": user.email, "password": user_password})

    response = client.post(url_for("logout"), follow_redirects=True)
    assert response.status_code == 200
    assert "You have been logged out successfully." in response.text

    response = client.get(url_for("dashboard"))
    assert response.status_code == 302
    assert response.headers["Location"].endswith("/login")


def test_unknown_page_renders_error(client: FlaskClient) -> None:
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert "404: Not Found" in response.text


def test_security_headers(client: FlaskClient) -> None:
    response = client.get(url_for("login"))
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
