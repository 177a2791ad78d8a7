"""CLI error handling helpers."""

import click

from ledgerflow.domain.account import AccountService
from ledgerflow.domain.errors import DomainError
from ledgerflow.utils.account_resolver import resolve_account


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError | FileNotFoundError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def resolve_account_or_exit(ctx: click.Context, account_service: AccountService, account: str | int) -> int:
    """Resolve an account code, name or "#id", or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except DomainError as exc:
        handle_domain_error(ctx, exc)
