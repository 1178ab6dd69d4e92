from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brotherhood.db import db
from brotherhood.model.enums import Milestone

if TYPE_CHECKING:
    from flask_sqlalchemy.model import Model

    from brotherhood.model.user import User
else:
    Model = db.Model


class OnboardingStatus(Model):
    """Per-user onboarding milestones.

    Several historical rows may exist for one user; only the newest one counts.
    The current step is never stored, see `brotherhood.steps.derive_step`.
    """

    __tablename__ = "onboarding_statuses"

    id: Mapped[int] = mapped_column(primary_key=True, nullable=False, autoincrement=True)
    user_id: Mapped[int] = mapped_column(db.ForeignKey("users.id", ondelete="CASCADE"))
    user: Mapped["User"] = relationship(
        backref=db.backref("onboarding_statuses", lazy=True, cascade="all, delete-orphan")
    )

    welcome_video_watched: Mapped[bool] = mapped_column(
        server_default=text("false"), default=False
    )
    goal_set: Mapped[bool] = mapped_column(server_default=text("false"), default=False)
    missions_selected: Mapped[bool] = mapped_column(server_default=text("false"), default=False)
    training_schema_selected: Mapped[bool] = mapped_column(
        server_default=text("false"), default=False
    )
    nutrition_plan_selected: Mapped[bool] = mapped_column(
        server_default=text("false"), default=False
    )
    challenge_started: Mapped[bool] = mapped_column(server_default=text("false"), default=False)
    onboarding_completed: Mapped[bool] = mapped_column(
        server_default=text("false"), default=False
    )

    started_at: Mapped[datetime] = mapped_column(default=datetime.now)
    completed_at: Mapped[Optional[datetime]]
    created_at: Mapped[datetime] = mapped_column(default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index("idx_onboarding_statuses_user_id_created_at", "user_id", "created_at"),
    )

    def __init__(self, user_id: int) -> None:
        now = datetime.now()
        super().__init__(
            user_id=user_id,  # type: ignore[call-arg]
            started_at=now,  # type: ignore[call-arg]
            created_at=now,  # type: ignore[call-arg]
        )
        for column in Milestone.columns():
            setattr(self, column, False)
        self.onboarding_completed = False

    @staticmethod
    def latest_for(user_id: int) -> "OnboardingStatus | None":
        return db.session.scalars(
            db.select(OnboardingStatus)
            .filter_by(user_id=user_id)
            .order_by(OnboardingStatus.created_at.desc(), OnboardingStatus.id.desc())
            .limit(1)
        ).one_or_none()

    @staticmethod
    def provision(user_id: int) -> "OnboardingStatus":
        status = OnboardingStatus(user_id=user_id)
        db.session.add(status)
        db.session.commit()
        return status

    @property
    def milestones(self) -> dict[str, bool]:
        return {column: bool(getattr(self, column)) for column in Milestone.columns()}

    @property
    def all_milestones_reached(self) -> bool:
        return all(self.milestones.values())

    def complete_milestone(self, milestone: Milestone) -> bool:
        """Set a milestone. Returns False if it was already set.

        Milestones only ever move from False to True.
        """
        if getattr(self, milestone.value):
            return False
        setattr(self, milestone.value, True)
        return True

    def mark_completed(self) -> bool:
        """Set the terminal marker once every milestone is reached."""
        if self.onboarding_completed:
            return False
        if not self.all_milestones_reached:
            raise ValueError("Cannot complete onboarding before every milestone is reached")
        self.onboarding_completed = True
        self.completed_at = datetime.now()
        return True

    @staticmethod
    def complete_if_ready(status_id: int) -> bool:
        """Set the terminal marker in the database if every milestone column is set.

        Runs as one conditional UPDATE so that milestones committed by other
        sessions are seen. Returns True if this call completed the record.
        """
        milestones_set = [getattr(OnboardingStatus, c).is_(True) for c in Milestone.columns()]
        result = db.session.execute(
            db.update(OnboardingStatus)
            .where(
                OnboardingStatus.id == status_id,
                OnboardingStatus.onboarding_completed.is_(False),
                *milestones_set,
            )
            .values(onboarding_completed=True, completed_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    def __repr__(self) -> str:
        return f"<OnboardingStatus user_id={self.user_id} completed={self.onboarding_completed}>"
