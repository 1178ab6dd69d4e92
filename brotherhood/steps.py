"""Derive the onboarding step from a user's milestones.

The step is the furthest destination a user has unlocked, not the number of
milestones reached: milestones can be set out of the usual order, so the
rules below are checked most-advanced first and the first match wins.
"""

from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping

FIRST_STEP = 0
FINAL_STEP = 5


class MalformedRecordError(Exception):
    pass


@dataclass(frozen=True)
class OnboardingSnapshot:
    welcome_video_watched: bool = False
    goal_set: bool = False
    missions_selected: bool = False
    training_schema_selected: bool = False
    nutrition_plan_selected: bool = False
    challenge_started: bool = False
    onboarding_completed: bool = False

    @classmethod
    def from_record(cls, record: Any) -> "OnboardingSnapshot":
        """Read the flags off an ORM row, mapping or any object carrying them.

        Raises `MalformedRecordError` rather than guessing at missing or
        non-boolean values.
        """
        values: dict[str, bool] = {}
        for field in fields(cls):
            if isinstance(record, Mapping):
                if field.name not in record:
                    raise MalformedRecordError(f"Onboarding record is missing {field.name!r}")
                value = record[field.name]
            else:
                try:
                    value = getattr(record, field.name)
                except AttributeError as e:
                    raise MalformedRecordError(
                        f"Onboarding record is missing {field.name!r}"
                    ) from e
            if not isinstance(value, bool):
                raise MalformedRecordError(
                    f"Onboarding record field {field.name!r} is not a bool: {value!r}"
                )
            values[field.name] = value
        return cls(**values)


Rule = tuple[Callable[[OnboardingSnapshot], bool], int]

# NOTE: a selected nutrition plan lands on the final step just like a finished
# onboarding. Callers that need to tell them apart check `onboarding_completed`.
STEP_RULES: tuple[Rule, ...] = (
    (lambda r: r.onboarding_completed, FINAL_STEP),
    (lambda r: r.challenge_started or r.nutrition_plan_selected, FINAL_STEP),
    (lambda r: r.training_schema_selected, 4),
    (lambda r: r.missions_selected, 3),
    (lambda r: r.goal_set, 2),
    (lambda r: r.welcome_video_watched, 1),
)


def derive_step(record: OnboardingSnapshot | None) -> int:
    if record is None:
        return FIRST_STEP
    for predicate, step in STEP_RULES:
        if predicate(record):
            return step
    return FIRST_STEP
