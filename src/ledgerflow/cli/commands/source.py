"""Source account commands."""

import click

from ledgerflow.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.source_account import SourceAccountService


@click.group()
def source_group():
    """Manage bank and card source accounts."""
    pass


@source_group.command("list")
@click.pass_context
def list_sources(ctx):
    """List source accounts and the ledger accounts they post against."""
    db = ctx.obj["db"]
    service = SourceAccountService(db)
    account_service = AccountService(db)

    sources = service.list_source_accounts()
    if not sources:
        click.echo("No source accounts found.")
        return

    click.echo("\nSource accounts:")
    click.echo("-" * 70)
    for src in sources:
        ledger = "unmapped"
        if src.ledger_account_id is not None:
            acc = account_service.get_account(src.ledger_account_id)
            ledger = f"{acc.code} {acc.name}" if acc else f"#{src.ledger_account_id}"
        click.echo(f"ID: {src.id:3d} | {src.name:30s} | {src.currency} | Ledger: {ledger}")


@source_group.command("map")
@click.argument("source_id", type=int)
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def map_source(ctx, source_id: int, account: str):
    """Map a source account to an existing ledger account.

    ACCOUNT can be an account code, name or #ID.

    Examples:
        ledgerflow source map 1 1000
    """
    db = ctx.obj["db"]
    service = SourceAccountService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    try:
        service.map_to_ledger_account(source_id, account_id)
        click.echo(f"Mapped source account {source_id} to ledger account {account}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register source commands with main CLI."""
    cli.add_command(source_group, name="source")
