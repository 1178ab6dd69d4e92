import click
from flask import Flask
from flask.cli import AppGroup

from brotherhood.admin import reset_onboarding
from brotherhood.db import db
from brotherhood.model import OnboardingStatus, User
from brotherhood.steps import MalformedRecordError, OnboardingSnapshot, derive_step


def register_onboarding_commands(app: Flask) -> None:
    onboarding_cli = AppGroup("onboarding", help="Onboarding progress commands")

    @onboarding_cli.command("status")
    @click.argument("email")
    def status(email: str) -> None:
        """Show the derived onboarding step of a user"""
        user = User.by_email(email)
        if not user:
            click.echo("User not found.")
            return

        record = OnboardingStatus.latest_for(user.id)
        if record is None:
            click.echo(f"{user.email}: step 0 (no onboarding record)")
            return

        try:
            step = derive_step(OnboardingSnapshot.from_record(record))
        except MalformedRecordError as e:
            click.echo(f"{user.email}: malformed onboarding record ({e})")
            return

        state = "completed" if record.onboarding_completed else "in progress"
        click.echo(f"{user.email}: step {step} ({state})")
        for name, reached in record.milestones.items():
            click.echo(f"  [{'x' if reached else ' '}] {name}")

    @onboarding_cli.command("reset")
    @click.argument("email")
    def reset(email: str) -> None:
        """Delete a user's onboarding records"""
        user = User.by_email(email)
        if not user:
            click.echo("User not found.")
            return

        deleted = reset_onboarding(user)
        click.echo(f"Onboarding reset for {user.email}, {deleted} record(s) deleted.")

    @onboarding_cli.command("prune-duplicates")
    def prune_duplicates() -> None:
        """Keep only the newest onboarding record of every user"""
        records = db.session.scalars(
            db.select(OnboardingStatus).order_by(
                OnboardingStatus.user_id,
                OnboardingStatus.created_at.desc(),
                OnboardingStatus.id.desc(),
            )
        ).all()

        seen: set[int] = set()
        deleted = 0
        for record in records:
            if record.user_id in seen:
                db.session.delete(record)
                deleted += 1
            else:
                seen.add(record.user_id)
        db.session.commit()

        click.echo(f"Deleted {deleted} duplicate onboarding record(s).")

    app.cli.add_command(onboarding_cli)
