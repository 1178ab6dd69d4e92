import enum


@enum.unique
class Milestone(enum.Enum):
    """Onboarding milestones in flow order, valued with their column name."""

    WELCOME_VIDEO_WATCHED = "welcome_video_watched"
    GOAL_SET = "goal_set"
    MISSIONS_SELECTED = "missions_selected"
    TRAINING_SCHEMA_SELECTED = "training_schema_selected"
    NUTRITION_PLAN_SELECTED = "nutrition_plan_selected"
    CHALLENGE_STARTED = "challenge_started"

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        return tuple(m.value for m in cls)
