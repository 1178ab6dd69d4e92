from typing import TYPE_CHECKING, Any, Callable, Generator
from uuid import uuid4

import pytest
from flask import Flask
from flask.testing import FlaskClient
from passlib.hash import scrypt
from pytest_mock import MockFixture

from brotherhood import create_app
from brotherhood.db import db
from brotherhood.model import OnboardingStatus, User

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture(autouse=True)
def _insecure_scrypt_params(mocker: MockFixture) -> None:
    mocker.patch("brotherhood.model.user.scrypt", scrypt.using(rounds=1, block_size=1))


@pytest.fixture()
def database(tmp_path: "Path") -> str:
    """A fresh SQLite database file per test"""
    return f"sqlite:///{tmp_path / 'brotherhood.db'}"


@pytest.fixture()
def app(database: str) -> Generator[Flask, None, None]:
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "SQLALCHEMY_DATABASE_URI": database,
            "WTF_CSRF_ENABLED": False,
            "SERVER_NAME": "localhost:8080",
            "PREFERRED_URL_SCHEME": "http",
        }
    )

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> Generator[FlaskClient, None, None]:
    with app.test_client() as client:
        yield client


@pytest.fixture()
def user_password() -> str:
    return "Test-testtesttest-1"


def make_user(password: str, is_admin: bool = False) -> User:
    user = User(email=f"test-{uuid4().hex[:12]}@example.com", password=password, is_admin=is_admin)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture()
def user(app: Flask, user_password: str) -> User:
    return make_user(user_password)


@pytest.fixture()
def admin(app: Flask, user_password: str) -> User:
    return make_user(user_password, is_admin=True)


def _log_in(client: FlaskClient, user: User) -> None:
    with client.session_transaction() as session:
        session["user_id"] = user.id
        session["is_authenticated"] = True


@pytest.fixture()
def _authenticated_user(client: FlaskClient, user: User) -> None:
    _log_in(client, user)


@pytest.fixture()
def _authenticated_admin(client: FlaskClient, admin: User) -> None:
    _log_in(client, admin)


@pytest.fixture()
def onboarding(user: User) -> Callable[..., OnboardingStatus]:
    """Give the test user an onboarding record with the given flags set"""

    def set_flags(**flags: Any) -> OnboardingStatus:
        status = OnboardingStatus(user_id=user.id)
        for key, value in flags.items():
            setattr(status, key, value)
        db.session.add(status)
        db.session.commit()
        return status

    return set_flags
