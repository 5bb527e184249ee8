"""Flask CLI commands for operating on user tokens."""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import uuid4

import click
from flask.cli import with_appcontext

from tokenkeeper.core.extensions import get_token_service
from tokenkeeper.services._shared.base import ServiceContext
from tokenkeeper.services._shared.errors import ServiceError, TokenNotFoundError
from tokenkeeper.services._shared.ports import secure_token_generator

LOGGER = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    """Raise logging verbosity for the token service when requested."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.getLogger("tokenkeeper.services").setLevel(level)
    LOGGER.setLevel(level)


def _command_context() -> ServiceContext:
    """Return a fresh context so each command's log lines share one request id."""
    return ServiceContext(request_id=f"cli-{uuid4()}")


@click.group("tokens")
@click.option("--verbose", is_flag=True, help="Enable verbose logging for token operations.")
def tokens_cli(verbose: bool) -> None:
    """Inspect, issue and revoke user tokens."""
    _configure_logging(verbose)


@tokens_cli.command("issue")
@click.argument("user_id")
@click.option("--ttl", type=click.IntRange(min=1), required=True, help="Lifetime in seconds.")
@click.option("--payload", default="", help="Opaque payload stored with the token.")
@with_appcontext
def issue_command(user_id: str, ttl: int, payload: str) -> None:
    """Issue a new random token for USER_ID and print it."""
    try:
        token = get_token_service().save_user_token(
            user_id,
            secure_token_generator(),
            payload,
            timedelta(seconds=ttl),
            ctx=_command_context(),
        )
    except ServiceError as exc:
        raise click.ClickException(f"Issue failed: {exc}") from exc
    click.echo(token)


@tokens_cli.command("list")
@click.argument("user_id")
@with_appcontext
def list_command(user_id: str) -> None:
    """List the live tokens of USER_ID with their payloads."""
    try:
        views = get_token_service().load_user_token_list(user_id, ctx=_command_context())
    except ServiceError as exc:
        raise click.ClickException(f"Listing failed: {exc}") from exc
    if not views:
        click.echo("(no tokens)")
        return
    for view in views:
        click.echo(f"{view.token_string}  {view.token_data}")


@tokens_cli.command("extend")
@click.argument("user_id")
@click.argument("token")
@click.option("--ttl", type=click.IntRange(min=1), required=True, help="New lifetime in seconds.")
@with_appcontext
def extend_command(user_id: str, token: str, ttl: int) -> None:
    """Reset the lifetime of TOKEN owned by USER_ID."""
    try:
        get_token_service().extend_user_token(
            user_id, token, timedelta(seconds=ttl), ctx=_command_context()
        )
    except TokenNotFoundError as exc:
        raise click.ClickException("Token not found") from exc
    except ServiceError as exc:
        raise click.ClickException(f"Extend failed: {exc}") from exc
    click.echo(f"Extended by {ttl}s")


@tokens_cli.command("cleanup")
@click.argument("user_id")
@with_appcontext
def cleanup_command(user_id: str) -> None:
    """Reconcile the token index of USER_ID with the token store."""
    try:
        removed = get_token_service().cleanup_user_token(user_id, ctx=_command_context())
    except ServiceError as exc:
        raise click.ClickException(f"Cleanup failed: {exc}") from exc
    click.echo(f"Removed {removed} stale entries")


@tokens_cli.command("revoke")
@click.argument("user_id")
@click.argument("tokens", nargs=-1, required=True)
@with_appcontext
def revoke_command(user_id: str, tokens: tuple[str, ...]) -> None:
    """Revoke the given TOKENS of USER_ID."""
    try:
        get_token_service().delete_user_token(user_id, *tokens, ctx=_command_context())
    except ServiceError as exc:
        raise click.ClickException(f"Revoke failed: {exc}") from exc
    click.echo(f"Revoked {len(tokens)} tokens")


@tokens_cli.command("revoke-all")
@click.argument("user_id")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt.")
@with_appcontext
def revoke_all_command(user_id: str, yes: bool) -> None:
    """Revoke every live token of USER_ID."""
    if not yes:
        click.confirm(f"This will end every session of {user_id!r}. Continue?", abort=True)
    ctx = _command_context()
    try:
        count = get_token_service().delete_all_user_tokens(user_id, ctx=ctx)
    except ServiceError as exc:
        raise click.ClickException(f"Revoke failed: {exc}") from exc
    LOGGER.info(
        "Revoked all tokens from the CLI",
        extra={"user_id": user_id, "count": count, "request_id": ctx.request_id},
    )
    click.echo(f"Revoked {count} tokens")
