"""Flask CLI commands for refresh-token maintenance.

Run ``flask sessions cleanup`` from a scheduler (cron, Kubernetes CronJob)
when several processes serve the API; the in-process sweeper is meant for
single-process deployments.
"""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authcore.services.registry import get_registry

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for the session services when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("authcore.services").setLevel(level)
    LOGGER.setLevel(level)


@click.group("sessions")
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def sessions_cli(verbose: bool) -> None:
    """Refresh-token (session) maintenance commands."""
    _configure_logging(verbose)


@sessions_cli.command("cleanup")
@with_appcontext
def cleanup_command() -> None:
    """Delete every expired refresh token."""
    removed = get_registry().auth.cleanup_expired()
    click.echo(f"Removed {removed} expired refresh token(s).")


@sessions_cli.command("revoke-user")
@click.argument("user_id", type=int)
@with_appcontext
def revoke_user_command(user_id: int) -> None:
    """Delete every refresh token of USER_ID (forces a new login everywhere)."""
    revoked = get_registry().auth.revoke_all_sessions(user_id)
    LOGGER.info("cli.revoke_user", extra={"event": "cli.revoke_user", "user_id": user_id})
    click.echo(f"Revoked {revoked} refresh token(s) for user {user_id}.")
