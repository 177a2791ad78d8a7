"""Review commands for reconciled bank rows."""

import click

from ledgerflow.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.money import format_money
from ledgerflow.domain.review import ReviewService


@click.group()
def review_group():
    """Review imported transactions."""
    pass


@review_group.command("list")
@click.option("--batch", "batch_id", type=int, help="Only show rows from this import batch")
@click.pass_context
def list_pending(ctx, batch_id: int | None):
    """List Pending rows with their match and suggestion."""
    db = ctx.obj["db"]
    service = ReviewService(db, ctx.obj["settings"])
    account_service = AccountService(db)

    rows = service.list_pending(batch_id=batch_id)
    if not rows:
        click.echo("No transactions awaiting review.")
        return

    click.echo(f"\n{'ID':>4s}  {'Date':10s}  {'Amount':>10s}  {'Description':30s}  Suggestion")
    click.echo("-" * 90)
    for txn in rows:
        if txn.has_match:
            suggestion = (
                f"{txn.confidence.value} match: {txn.matched_entity_type.value} {txn.matched_entity_id}"
            )
        elif txn.suggested_account_id is not None:
            acc = account_service.get_account(txn.suggested_account_id)
            source = txn.categorization_source.value if txn.categorization_source else "?"
            suggestion = f"{acc.code} {acc.name} ({source})" if acc else f"#{txn.suggested_account_id}"
        else:
            suggestion = "needs categorization"
        flag = " [personal]" if txn.is_personal else ""
        click.echo(
            f"{txn.id:4d}  {txn.transaction_date.isoformat()}  {format_money(txn.amount):>10s}  "
            f"{txn.description[:30]:30s}  {suggestion}{flag}"
        )


@review_group.command("approve")
@click.argument("transaction_id", type=int)
@click.option("--account", help="Offsetting account (code, name or #ID); overrides any suggestion")
@click.option("--accept-match", is_flag=True, help="Link to a Low-confidence match")
@click.option("--memo", help="Memo for the journal lines")
@click.option("--personal/--business", "is_personal", default=None, help="Override the personal flag")
@click.option("--by", "reviewed_by", help="Reviewer name")
@click.option("--post", "post_now", is_flag=True, help="Post the journal entry immediately")
@click.pass_context
def approve(
    ctx,
    transaction_id: int,
    account: str | None,
    accept_match: bool,
    memo: str | None,
    is_personal: bool | None,
    reviewed_by: str | None,
    post_now: bool,
):
    """Approve a Pending row.

    Examples:
        ledgerflow review approve 12
        ledgerflow review approve 12 --account 6100 --post
        ledgerflow review approve 14 --accept-match
    """
    db = ctx.obj["db"]
    service = ReviewService(db, ctx.obj["settings"])
    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        txn = service.approve(
            transaction_id,
            account_id=account_id,
            accept_match=accept_match,
            memo=memo,
            is_personal=is_personal,
            reviewed_by=reviewed_by,
        )
        if txn.is_linked:
            click.echo(
                f"Linked transaction {transaction_id} to {txn.matched_entity_type.value} "
                f"{txn.matched_entity_id}; no new journal entry"
            )
            return
        click.echo(f"Approved transaction {transaction_id}")
        if post_now:
            entry_id = service.posting.post_imported_transaction(transaction_id, created_by=reviewed_by)
            click.echo(f"Posted journal entry {entry_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@review_group.command("reject")
@click.argument("transaction_id", type=int)
@click.option("--by", "reviewed_by", help="Reviewer name")
@click.pass_context
def reject(ctx, transaction_id: int, reviewed_by: str | None):
    """Reject a Pending row so it is never posted."""
    service = ReviewService(ctx.obj["db"], ctx.obj["settings"])
    try:
        service.reject(transaction_id, reviewed_by=reviewed_by)
        click.echo(f"Rejected transaction {transaction_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register review commands with main CLI."""
    cli.add_command(review_group, name="review")
