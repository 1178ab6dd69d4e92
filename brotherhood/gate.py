import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from flask import Flask, redirect, request, session
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.wrappers.response import Response

from brotherhood.db import db
from brotherhood.model import OnboardingStatus, User
from brotherhood.steps import (
    FINAL_STEP,
    FIRST_STEP,
    MalformedRecordError,
    OnboardingSnapshot,
    derive_step,
)
from brotherhood.utils import is_under, join_path


@dataclass(frozen=True)
class StepRoute:
    step: int
    title: str
    path: str
    # pages that open up alongside the step's own destination
    unlocks: tuple[str, ...] = ()


# Paths are relative to the gated prefix.
STEP_ROUTES: tuple[StepRoute, ...] = (
    StepRoute(0, "Welcome video", "welcome-video", unlocks=("profile",)),
    StepRoute(1, "Set your main goal", "goal"),
    StepRoute(2, "Select missions", "missions"),
    StepRoute(3, "Choose a training plan", "training-schemas"),
    StepRoute(4, "Choose a nutrition plan", "nutrition-plans"),
    StepRoute(5, "Introduce yourself in the forum", "brotherhood/forum/new-members"),
)


def normalize_path(path: str) -> str:
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


class StepTable:
    """Canonical destination and allow-list per step, under one gated prefix.

    Allow-lists accumulate: a step permits everything the steps before it
    permit, plus its own destination.
    """

    def __init__(self, prefix: str, routes: tuple[StepRoute, ...] = STEP_ROUTES) -> None:
        if [r.step for r in routes] != list(range(FIRST_STEP, FINAL_STEP + 1)):
            raise ValueError("Step routes must cover every step exactly once, in order")

        self.prefix = normalize_path(prefix)
        self.home = self.prefix
        self.routes = routes

        self._canonical: dict[int, str] = {}
        self._allow_lists: dict[int, tuple[str, ...]] = {}
        allowed: list[str] = []
        for route in routes:
            canonical = join_path(self.prefix, route.path)
            if canonical == self.home:
                raise ValueError(f"Step {route.step} cannot use the namespace home")
            self._canonical[route.step] = canonical
            allowed.append(canonical)
            allowed.extend(join_path(self.prefix, p) for p in route.unlocks)
            self._allow_lists[route.step] = tuple(allowed)

    def canonical_path(self, step: int) -> str:
        return self._canonical[step]

    def allow_list(self, step: int) -> tuple[str, ...]:
        return self._allow_lists[step]

    def in_namespace(self, path: str) -> bool:
        return is_under(normalize_path(path), self.prefix)

    def is_allowed(self, step: int, path: str) -> bool:
        path = normalize_path(path)
        if step >= FINAL_STEP:
            return True
        if path == self.home:
            return False
        return any(is_under(path, entry) for entry in self._allow_lists[step])


@dataclass(frozen=True)
class Decision:
    allow: bool
    redirect_to: Optional[str] = None

    @classmethod
    def allowed(cls) -> "Decision":
        return cls(allow=True)

    @classmethod
    def redirect(cls, path: str) -> "Decision":
        return cls(allow=False, redirect_to=path)


class AccessGate:
    """Decide whether a user may open a path in the gated namespace.

    Stateless: every call fetches the record and derives the step again. A
    missing record is provisioned here. Any failure to load a usable record
    resolves as the first step, never as an exception.
    """

    def __init__(
        self,
        table: StepTable,
        fetch_record: Callable[[Any], Any],
        provision_record: Callable[[Any], Any],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.table = table
        self._fetch_record = fetch_record
        self._provision_record = provision_record
        self.logger = logger or logging.getLogger(__name__)

    def authorize(self, user_id: Any, requested_path: str) -> Decision:
        path = normalize_path(requested_path)
        if not self.table.in_namespace(path):
            return Decision.allowed()

        # login is enforced by the pages themselves
        if user_id is None:
            return Decision.allowed()

        step = self.current_step(user_id)
        return self.decide(step, path)

    def current_step(self, user_id: Any) -> int:
        try:
            record = self._fetch_record(user_id)
            if record is None:
                record = self._provision(user_id)
            snapshot = OnboardingSnapshot.from_record(record) if record is not None else None
        except MalformedRecordError as e:
            self.logger.error(f"Malformed onboarding record for user {user_id}: {e}")
            return FIRST_STEP
        except Exception:
            self.logger.error(f"Error fetching onboarding record for user {user_id}", exc_info=True)
            return FIRST_STEP

        return derive_step(snapshot)

    def decide(self, step: int, path: str) -> Decision:
        if self.table.is_allowed(step, path):
            return Decision.allowed()

        destination = self.table.canonical_path(step)
        self.logger.debug(f"Onboarding step {step}: redirecting {path} to {destination}")
        return Decision.redirect(destination)

    def fail_closed(self, path: str) -> Decision:
        return self.decide(FIRST_STEP, normalize_path(path))

    def _provision(self, user_id: Any) -> Any:
        try:
            record = self._provision_record(user_id)
        except Exception:
            self.logger.error(
                f"Error provisioning onboarding record for user {user_id}", exc_info=True
            )
            return None
        self.logger.info(f"Provisioned onboarding record for user {user_id}")
        return record


def fetch_latest_record(user_id: int) -> OnboardingStatus | None:
    try:
        return OnboardingStatus.latest_for(user_id)
    except SQLAlchemyError:
        db.session.rollback()
        raise


def provision_record(user_id: int) -> OnboardingStatus:
    try:
        return OnboardingStatus.provision(user_id)
    except SQLAlchemyError:
        db.session.rollback()
        raise


def create_gate(app: Flask) -> AccessGate:
    return AccessGate(
        StepTable(app.config["ONBOARDING_GATED_PREFIX"]),
        fetch_record=fetch_latest_record,
        provision_record=provision_record,
        logger=app.logger,
    )


def init_app(app: Flask) -> None:
    @app.before_request
    def enforce_onboarding() -> Response | None:
        if not app.config.get("ONBOARDING_GATE_ENABLED", True):
            return None

        gate = create_gate(app)
        if not gate.table.in_namespace(request.path):
            return None

        try:
            user_id = _current_user_id()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.error("Error loading the session user", exc_info=True)
            decision = gate.fail_closed(request.path)
        else:
            decision = gate.authorize(user_id, request.path)

        if decision.allow:
            return None
        return redirect(decision.redirect_to or gate.table.canonical_path(FIRST_STEP))


def _current_user_id() -> int | None:
    user_id = session.get("user_id")
    if user_id is None or not session.get("is_authenticated", False):
        return None
    if db.session.get(User, user_id) is None:
        return None
    return user_id
