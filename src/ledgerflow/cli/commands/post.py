"""Posting command for approved bank rows."""

import click

from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.posting import PostingEngine


@click.command("post")
@click.argument("transaction_ids", nargs=-1, type=int)
@click.option("--all", "post_all", is_flag=True, help="Post every Approved row")
@click.option("--batch", "batch_id", type=int, help="With --all, only rows from this import batch")
@click.option("--by", "created_by", help="Name recorded on the journal entries")
@click.pass_context
def post(ctx, transaction_ids: tuple[int, ...], post_all: bool, batch_id: int | None, created_by: str | None):
    """Post Approved rows to the ledger.

    Examples:
        ledgerflow post 12 13
        ledgerflow post --all --batch 3
    """
    engine = PostingEngine(ctx.obj["db"], ctx.obj["settings"])

    if post_all:
        summary = engine.post_approved(batch_id=batch_id, created_by=created_by)
        for txn_id, entry_id in summary.posted:
            click.echo(f"Posted transaction {txn_id} as journal entry {entry_id}")
        click.echo(f"Posted {len(summary.posted)} transactions")
        if summary.errors:
            for error in summary.errors:
                click.echo(f"Error: {error}", err=True)
            ctx.exit(1)
        return

    if not transaction_ids:
        click.echo("Error: Provide transaction IDs or --all", err=True)
        ctx.exit(1)

    failed = False
    for txn_id in transaction_ids:
        try:
            entry_id = engine.post_imported_transaction(txn_id, created_by=created_by)
            click.echo(f"Posted transaction {txn_id} as journal entry {entry_id}")
        except DomainError as e:
            click.echo(f"Error: {e}", err=True)
            failed = True
    if failed:
        ctx.exit(1)


def register_commands(cli):
    """Register post command with main CLI."""
    cli.add_command(post)
