"""Bank rule commands."""

import click

from ledgerflow.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.entities import MatchField, MatchType, RuleTransactionType
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.rules import BankRuleService


@click.group()
def rule_group():
    """Manage bank categorization rules."""
    pass


@rule_group.command("create")
@click.argument("name")
@click.option("--value", "match_value", required=True, help="Text, amount or pattern to match")
@click.option("--account", required=True, help="Account to assign (code, name or #ID)")
@click.option(
    "--field",
    "match_field",
    type=click.Choice([f.value for f in MatchField], case_sensitive=False),
    default=MatchField.DESCRIPTION.value,
    show_default=True,
)
@click.option(
    "--match",
    "match_type",
    type=click.Choice([t.value for t in MatchType], case_sensitive=False),
    default=MatchType.CONTAINS.value,
    show_default=True,
)
@click.option("--priority", type=int, default=100, show_default=True, help="Lower runs first")
@click.option("--source", "source_account_id", type=int, help="Only apply to this source account")
@click.option(
    "--direction",
    type=click.Choice([t.value for t in RuleTransactionType], case_sensitive=False),
    help="Only apply to outflows (Debit) or inflows (Credit)",
)
@click.option("--min-amount", help="Minimum absolute amount")
@click.option("--max-amount", help="Maximum absolute amount")
@click.option("--memo", help="Memo to assign")
@click.pass_context
def create_rule(
    ctx,
    name: str,
    match_value: str,
    account: str,
    match_field: str,
    match_type: str,
    priority: int,
    source_account_id: int | None,
    direction: str | None,
    min_amount: str | None,
    max_amount: str | None,
    memo: str | None,
):
    """Create a bank rule.

    Examples:
        ledgerflow rule create "Staples" --value STAPLES --account 6100
        ledgerflow rule create "Rent" --field Amount --match Equals --value 2500.00 --account 6200
    """
    db = ctx.obj["db"]
    service = BankRuleService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    try:
        rule_id = service.create_rule(
            name=name,
            match_field=match_field,
            match_type=match_type,
            match_value=match_value,
            assign_account_id=account_id,
            priority=priority,
            source_account_id=source_account_id,
            transaction_type=direction,
            min_amount=min_amount,
            max_amount=max_amount,
            assign_memo=memo,
        )
        click.echo(f"Created rule '{name}' (ID: {rule_id})")
    except DomainError as e:
        handle_domain_error(ctx, e)


@rule_group.command("list")
@click.option("--all", "include_disabled", is_flag=True, help="Include disabled rules")
@click.pass_context
def list_rules(ctx, include_disabled: bool):
    """List bank rules in evaluation order."""
    rules = BankRuleService(ctx.obj["db"]).list_rules(include_disabled=include_disabled)
    if not rules:
        click.echo("No rules found.")
        return

    click.echo("\nRules:")
    click.echo("-" * 70)
    for r in rules:
        state = "" if r.is_enabled else " (disabled)"
        click.echo(
            f"ID: {r.id:3d} | P{r.priority:<4d} | {r.name:20s} | "
            f"{r.match_field.value} {r.match_type.value} '{r.match_value}' -> #{r.assign_account_id}{state}"
        )


@rule_group.command("disable")
@click.argument("rule_id", type=int)
@click.pass_context
def disable_rule(ctx, rule_id: int):
    """Disable a bank rule."""
    try:
        BankRuleService(ctx.obj["db"]).disable_rule(rule_id)
        click.echo(f"Disabled rule {rule_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
