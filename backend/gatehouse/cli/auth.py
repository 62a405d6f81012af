"""Flask CLI commands for operating the auth service."""

from __future__ import annotations

import logging
import threading

import click
from flask import current_app
from flask.cli import with_appcontext

from gatehouse.core.auth import get_components
from gatehouse.core.config import refresh_lifetime
from gatehouse.core.extensions import db
from gatehouse.security.passwords import hash_password
from gatehouse.services._shared.errors import ConflictError, StorageError
from gatehouse.services._shared.ports import UserRecord, Whitelist

LOGGER = logging.getLogger(__name__)


def sweep_once(whitelist: Whitelist, max_age) -> int:
    """Run batches until the end of the keyspace; return the number reaped."""
    total = 0
    after, reaped = whitelist.sweep_batch(None, max_age)
    total += reaped
    while after is not None:
        after, reaped = whitelist.sweep_batch(after, max_age)
        total += reaped
    return total


@click.group("auth")
def auth_cli() -> None:
    """User and refresh-token whitelist maintenance."""


@auth_cli.command("init-db")
@with_appcontext
def init_db_command() -> None:
    """Create the user tables if they do not exist."""
    db.create_all()
    click.echo("User tables ready.")


@auth_cli.command("create-user")
@click.argument("name")
@click.password_option(help="Password for the new user.")
@click.option("--email", default="", help="Contact address.")
@click.option("--class", "user_class", default="user", show_default=True, help="Account class.")
@click.option("--admin", is_flag=True, help="Grant the administrator flag.")
@with_appcontext
def create_user_command(name: str, password: str, email: str, user_class: str, admin: bool) -> None:
    """Create a local user NAME with a hashed password."""
    store = get_components().service.users
    record = UserRecord(
        name=name,
        password_hash=hash_password(password),
        email=email,
        user_class=user_class,
        admin=admin,
    )
    try:
        store.create_user(record)
    except ConflictError as exc:
        raise click.ClickException(f"User {name!r} already exists.") from exc
    except StorageError as exc:
        raise click.ClickException(f"Could not create user: {exc}") from exc
    click.echo(f"Created user {name!r}.")


@auth_cli.command("reap")
@click.option("--once", is_flag=True, help="Sweep the whole whitelist once and exit.")
@with_appcontext
def reap_command(once: bool) -> None:
    """Delete expired refresh tokens from the whitelist.

    Without ``--once`` the reaper runs in the foreground until interrupted.
    """
    components = get_components()
    max_age = refresh_lifetime(current_app.config)
    if components.reaper is not None:
        # Avoid two reapers walking the same keyspace.
        components.reaper.stop()

    try:
        if once:
            reaped = sweep_once(components.whitelist, max_age)
            click.echo(f"Reaped {reaped} expired refresh token(s).")
            return
        stop = threading.Event()
        click.echo(f"Reaping entries older than {max_age}; Ctrl+C to stop.")
        try:
            components.whitelist.reap(max_age, stop=stop)
        except KeyboardInterrupt:
            stop.set()
            click.echo("Reaper stopped.")
    except StorageError as exc:
        LOGGER.error("whitelist reap failed: %s", exc)
        raise click.ClickException(f"Reap failed: {exc}") from exc
