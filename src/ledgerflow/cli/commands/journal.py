"""Journal entry commands."""

from datetime import date as date_type

import click

from ledgerflow.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import JournalEntryStatus
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.journal import EntryDraft
from ledgerflow.domain.money import format_money
from ledgerflow.domain.posting import PostingEngine
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


def _parse_line(ctx: click.Context, account_service: AccountService, line_spec: str) -> tuple[int, str]:
    account, sep, amount = line_spec.rpartition("=")
    if not sep or not account or not amount:
        click.echo(f"Error: Invalid line '{line_spec}'. Use ACCOUNT=AMOUNT", err=True)
        ctx.exit(1)
    return resolve_account_or_exit(ctx, account_service, account), amount


def _parse_date_or_exit(ctx: click.Context, value: str | None) -> date_type:
    if value is None:
        return date_type.today()
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)


@click.group()
def journal_group():
    """Manage journal entries."""
    pass


@journal_group.command("add")
@click.argument("reference")
@click.option("--date", "entry_date", help="Entry date (default: today)")
@click.option("--description", help="Entry description")
@click.option("--debit", "debits", multiple=True, help="Debit line as ACCOUNT=AMOUNT (repeatable)")
@click.option("--credit", "credits", multiple=True, help="Credit line as ACCOUNT=AMOUNT (repeatable)")
@click.option("--draft", is_flag=True, help="Save as Draft instead of posting")
@click.option("--by", "created_by", help="Author name")
@click.pass_context
def add_entry(
    ctx,
    reference: str,
    entry_date: str | None,
    description: str | None,
    debits: tuple[str, ...],
    credits: tuple[str, ...],
    draft: bool,
    created_by: str | None,
):
    """Add a manual journal entry. Debits must equal credits exactly.

    Examples:
        ledgerflow journal add ADJ-1 --debit 6100=25.00 --credit 1000=25.00
        ledgerflow journal add ACCR-7 --date 2024-03-31 --debit 6200=300 --credit 2100=300 --draft
    """
    db = ctx.obj["db"]
    engine = PostingEngine(db, ctx.obj["settings"])
    account_service = AccountService(db)
    entry = EntryDraft(
        reference=reference,
        transaction_date=_parse_date_or_exit(ctx, entry_date),
        description=description,
        created_by=created_by,
    )

    try:
        for line_spec in debits:
            account_id, amount = _parse_line(ctx, account_service, line_spec)
            entry.add_debit(account_id, parse_amount(amount))
        for line_spec in credits:
            account_id, amount = _parse_line(ctx, account_service, line_spec)
            entry.add_credit(account_id, parse_amount(amount))

        if draft:
            entry_id = engine.save_draft(entry)
            click.echo(f"Saved draft journal entry {entry_id}")
        else:
            entry_id = engine.post_entry(entry)
            click.echo(f"Posted journal entry {entry_id}")
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@journal_group.command("show")
@click.argument("entry_id", type=int)
@click.pass_context
def show_entry(ctx, entry_id: int):
    """Show a journal entry and its lines."""
    db = ctx.obj["db"]
    engine = PostingEngine(db, ctx.obj["settings"])
    account_service = AccountService(db)
    try:
        entry = engine.require_entry(entry_id)
    except DomainError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\nJournal entry {entry.id}: {entry.reference} [{entry.status.value}]")
    click.echo(f"Date: {entry.transaction_date.isoformat()}")
    if entry.description:
        click.echo(f"Description: {entry.description}")
    if entry.reversal_of_id is not None:
        click.echo(f"Reverses entry {entry.reversal_of_id}")
    click.echo("-" * 70)
    for line in entry.lines:
        acc = account_service.get_account(line.account_id)
        label = f"{acc.code} {acc.name}" if acc else f"#{line.account_id}"
        debit = format_money(line.debit) if line.debit else ""
        credit = format_money(line.credit) if line.credit else ""
        click.echo(f"{label:40s}  {debit:>12s}  {credit:>12s}")
    click.echo("-" * 70)
    click.echo(f"{'Total':40s}  {format_money(entry.total_debit):>12s}  {format_money(entry.total_credit):>12s}")


@journal_group.command("list")
@click.option(
    "--status",
    type=click.Choice([s.value for s in JournalEntryStatus], case_sensitive=False),
    help="Only show entries with this status",
)
@click.pass_context
def list_entries(ctx, status: str | None):
    """List journal entries."""
    engine = PostingEngine(ctx.obj["db"], ctx.obj["settings"])
    wanted = None
    if status is not None:
        wanted = next(s for s in JournalEntryStatus if s.value.lower() == status.lower())
    entries = engine.list_entries(status=wanted)
    if not entries:
        click.echo("No journal entries found.")
        return

    for entry in entries:
        click.echo(
            f"{entry.id:4d}  {entry.transaction_date.isoformat()}  {entry.reference:20s}  "
            f"{format_money(entry.total_debit):>12s}  {entry.status.value}"
        )


@journal_group.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--date", "reversal_date", help="Reversal date (default: today)")
@click.option("--by", "created_by", help="Author name")
@click.pass_context
def reverse_entry(ctx, entry_id: int, reversal_date: str | None, created_by: str | None):
    """Reverse a posted entry with an offsetting entry."""
    engine = PostingEngine(ctx.obj["db"], ctx.obj["settings"])
    try:
        reversal_id = engine.reverse_entry(
            entry_id, reversal_date=_parse_date_or_exit(ctx, reversal_date), created_by=created_by
        )
        click.echo(f"Reversed journal entry {entry_id} with entry {reversal_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@journal_group.command("post-draft")
@click.argument("entry_id", type=int)
@click.pass_context
def post_draft(ctx, entry_id: int):
    """Post a Draft entry."""
    engine = PostingEngine(ctx.obj["db"], ctx.obj["settings"])
    try:
        engine.post_draft(entry_id)
        click.echo(f"Posted journal entry {entry_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
