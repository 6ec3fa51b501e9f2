"""
commands.py — Flask CLI commands.

    flask --app "backend.playmatch:create_app()" sweep
    flask --app "backend.playmatch:create_app()" create-admin --email ... --password ...
"""

from __future__ import annotations

import click
from flask import Flask, current_app
from flask.cli import with_appcontext

from backend.playmatch.errors import AppError
from backend.playmatch.extensions import db


@click.command("sweep")
@with_appcontext
def sweep_command():
    """Close every active game card whose scheduled time has passed."""
    from backend.playmatch.services.sweeper import sweep_expired_game_cards

    closed = sweep_expired_game_cards(db.session)
    click.echo(f"Closed {closed} expired game card(s).")


@click.command("create-admin")
@click.option("--email", required=True, help="Administrator email")
@click.option("--password", required=True, help="Administrator password")
@click.option("--first-name", required=True, help="First name")
@click.option("--last-name", required=True, help="Last name")
@with_appcontext
def create_admin_command(email, password, first_name, last_name):
    """Create an ADMIN account. Public signup only ever creates USER accounts."""
    from backend.playmatch.services.auth_service import create_admin

    data = {
        "email": email.strip().lower(),
        "password": password,
        "first_name": first_name,
        "last_name": last_name,
    }
    try:
        user = create_admin(data, db.session)
    except AppError as exc:
        db.session.rollback()
        click.echo(click.style(f"Error: {exc.message}", fg="red"))
        raise SystemExit(1)

    db.session.commit()
    current_app.logger.debug("create-admin committed user %s", user.id)
    click.echo(click.style("Administrator created successfully!", fg="green"))
    click.echo(f"  Id: {user.id}")
    click.echo(f"  Email: {user.email}")


def register_commands(app: Flask) -> None:
    app.cli.add_command(sweep_command)
    app.cli.add_command(create_admin_command)
