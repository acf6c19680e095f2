"""Flask CLI commands for refresh token administration."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from session_auth.core.container import services
from session_auth.services._shared.errors import StorageError

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh token maintenance commands."""


@tokens_cli.command("revoke-user")
@click.argument("user_id", type=click.IntRange(min=1))
@with_appcontext
def revoke_user_command(user_id: int) -> None:
    """Revoke every refresh token of USER_ID (credential compromise response)."""
    try:
        count = services().refresh_tokens.revoke_all_for_user(user_id)
    except StorageError as exc:
        raise click.ClickException(f"Revocation failed: {exc}") from exc
    LOGGER.info("cli.revoke_user", extra={"user_id": user_id, "count": count})
    click.echo(f"Revoked {count} refresh token(s) for user {user_id}.")
