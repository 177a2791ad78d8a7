"""Chart of accounts commands."""

import click

from ledgerflow.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import AccountType
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.money import format_money
from ledgerflow.domain.posting import PostingEngine


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option(
    "--type",
    "account_type",
    required=True,
    type=click.Choice([t.value for t in AccountType], case_sensitive=False),
    help="Account type",
)
@click.option("--subtype", help="Free-form subtype, e.g. 'Bank' or 'Credit Card'")
@click.option("--parent", "parent_code", help="Code of the parent account")
@click.pass_context
def create_account(ctx, code: str, name: str, account_type: str, subtype: str | None, parent_code: str | None):
    """Create a new ledger account.

    Examples:
        ledgerflow account create 1000 "Checking" --type Asset --subtype Bank
        ledgerflow account create 6100 "Office Supplies" --type Expense --parent 6000
    """
    service = AccountService(ctx.obj["db"])
    try:
        account_id = service.create_account(
            code=code, name=name, account_type=account_type, subtype=subtype, parent_code=parent_code
        )
        click.echo(f"Created account {code} '{name}' (ID: {account_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive accounts")
@click.option("--tree", is_flag=True, help="Show parent/child structure")
@click.pass_context
def list_accounts(ctx, include_inactive: bool, tree: bool):
    """List ledger accounts."""
    service = AccountService(ctx.obj["db"])

    if tree:
        nodes = service.get_account_tree(include_inactive=include_inactive)
        if not nodes:
            click.echo("No accounts found.")
            return

        def show(items, depth=0):
            for node in items:
                acc = node["account"]
                click.echo(f"{'  ' * depth}{acc.code} {acc.name}")
                show(node["children"], depth + 1)

        show(nodes)
        return

    accounts = service.list_accounts(include_inactive=include_inactive)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 70)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(f"ID: {acc.id:3d} | {acc.code:6s} | {acc.name:30s} | {acc.account_type.value}{status}")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account so it receives no new journal lines.

    ACCOUNT can be an account code, name or #ID.
    """
    service = AccountService(ctx.obj["db"])
    account_id = resolve_account_or_exit(ctx, service, account)
    try:
        service.deactivate_account(account_id)
        click.echo(f"Deactivated account {service.format_account_path(account_id)}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@account_group.command("balances")
@click.pass_context
def show_balances(ctx):
    """Show posted debit and credit totals per account."""
    engine = PostingEngine(ctx.obj["db"], ctx.obj["settings"])
    balances = [b for b in engine.account_balances() if b.total_debit or b.total_credit]
    if not balances:
        click.echo("No posted entries.")
        return

    click.echo(f"\n{'Code':6s}  {'Account':30s}  {'Debit':>12s}  {'Credit':>12s}  {'Balance':>12s}")
    click.echo("-" * 80)
    for b in balances:
        click.echo(
            f"{b.account.code:6s}  {b.account.name:30s}  {format_money(b.total_debit):>12s}  "
            f"{format_money(b.total_credit):>12s}  {format_money(b.balance):>12s}"
        )


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
