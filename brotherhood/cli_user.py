import click
from flask import Flask
from flask.cli import AppGroup

from brotherhood.db import db
from brotherhood.model import User


def register_user_commands(app: Flask) -> None:
    user_cli = AppGroup("user", help="User management commands")

    @user_cli.command("create")
    @click.argument("email")
    @click.option("--admin", is_flag=True, default=False, help="Grant admin rights")
    @click.password_option()
    def create(email: str, admin: bool, password: str) -> None:
        """Create a user"""
        if User.by_email(email):
            click.echo("User already exists.")
            return

        if not User.PASSWORD_MIN_LENGTH <= len(password) <= User.PASSWORD_MAX_LENGTH:
            click.echo(
                f"Password must be between {User.PASSWORD_MIN_LENGTH} and "
                f"{User.PASSWORD_MAX_LENGTH} characters."
            )
            return

        user = User(email=email, password=password, is_admin=admin)
        db.session.add(user)
        db.session.commit()
        click.echo(f"User {user.email} created.")

    @user_cli.command("toggle-admin")
    @click.argument("email")
    def toggle_admin(email: str) -> None:
        """Toggle admin rights of a user"""
        user = User.by_email(email)
        if not user:
            click.echo("User not found.")
            return

        user.is_admin = not user.is_admin
        db.session.commit()
        click.echo(f"User {user.email} admin status toggled to {user.is_admin}.")

    app.cli.add_command(user_cli)
