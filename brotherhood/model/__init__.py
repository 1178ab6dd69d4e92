# ruff: noqa: F401

from brotherhood.model.enums import Milestone
from brotherhood.model.onboarding_status import OnboardingStatus
from brotherhood.model.user import User
