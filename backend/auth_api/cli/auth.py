"""Flask CLI commands for account and session administration."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from auth_api.infra import get_session_store, get_token_provider
from auth_api.schemas import SessionSchema
from auth_api.services._shared.errors import ConflictError, InvalidInputError
from auth_api.services.auth import AuthService
from auth_api.services.identity import IdentityService, UserPublicOut
from auth_api.services.registration import UserRegistrationIn, UserRegistrationService

LOGGER = logging.getLogger(__name__)

session_schema = SessionSchema()


def _service() -> AuthService:
    return AuthService(token_provider=get_token_provider(), session_store=get_session_store())


def _user_or_abort(email: str) -> UserPublicOut:
    user = IdentityService().get_user_by_email(email)
    if user is None:
        raise click.ClickException(f"No user registered as {email}")
    return user


@click.group("auth")
def auth_cli() -> None:
    """Account and session administration."""


@auth_cli.command("create-user")
@click.argument("email")
@click.option("--name", default=None, help="Display name.")
@click.password_option(help="Password (prompted when omitted).")
@with_appcontext
def create_user(email: str, name: str | None, password: str) -> None:
    """Create a password account for EMAIL."""
    try:
        user = UserRegistrationService().register(
            UserRegistrationIn(email=email, password=password, name=name)
        )
    except (ConflictError, InvalidInputError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created user id={user.id} email={user.email}")


@auth_cli.command("sessions")
@click.argument("email")
@with_appcontext
def list_sessions(email: str) -> None:
    """List active sessions of EMAIL."""
    user = _user_or_abort(email)
    sessions = _service().list_sessions(user.id)
    if not sessions:
        click.echo("  (no active sessions)")
        return
    for record in sessions:
        row = session_schema.dump(record)
        click.echo(
            f"  id={row['id']}  created_at={row['created_at']}  "
            f"ip={row['ip'] or '-'}  ua={row['user_agent'] or '-'}"
        )


@auth_cli.command("revoke-sessions")
@click.argument("email")
@with_appcontext
def revoke_sessions(email: str) -> None:
    """Revoke every active session of EMAIL."""
    user = _user_or_abort(email)
    count = _service().revoke_all_for_user(user.id)
    LOGGER.info("cli.revoke_sessions", extra={"user_id": user.id})
    click.echo(f"Revoked {count} session(s) for {user.email}")
