"""Payment commands."""

import click

from ledgerflow.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgerflow.domain.account import AccountService
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.money import format_money
from ledgerflow.domain.payments import PaymentService
from ledgerflow.domain.posting import PostingEngine
from ledgerflow.utils.amount_parser import parse_amount
from ledgerflow.utils.date_parser import parse_date


@click.group()
def payment_group():
    """Record customer receipts and bill payments."""
    pass


@payment_group.command("record")
@click.option("--kind", type=click.Choice(["customer", "bill"], case_sensitive=False), required=True)
@click.option("--date", "payment_date", required=True, help="Payment date")
@click.option("--amount", required=True, help="Positive payment amount")
@click.option("--account", required=True, help="Bank account the money moved through")
@click.option(
    "--against",
    required=True,
    help="Receivable (customer) or payable (bill) account being cleared",
)
@click.option("--counterparty", help="Customer or vendor name")
@click.option("--reference", "reference_number", help="Check or remittance number")
@click.option("--document", "document_number", help="Invoice or bill number")
@click.option("--by", "created_by", help="Author name")
@click.pass_context
def record_payment(
    ctx,
    kind: str,
    payment_date: str,
    amount: str,
    account: str,
    against: str,
    counterparty: str | None,
    reference_number: str | None,
    document_number: str | None,
    created_by: str | None,
):
    """Record a payment and post its journal entry.

    Examples:
        ledgerflow payment record --kind customer --date 2024-03-01 --amount 500.00 \\
            --account 1000 --against 1200 --counterparty "Acme" --document INV-1042
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = PaymentService(db, PostingEngine(db, ctx.obj["settings"]))
    bank_id = resolve_account_or_exit(ctx, account_service, account)
    against_id = resolve_account_or_exit(ctx, account_service, against)

    try:
        when = parse_date(payment_date)
        value = parse_amount(amount)
        if kind.lower() == "customer":
            payment = service.record_customer_payment(
                when,
                value,
                deposit_account_id=bank_id,
                receivable_account_id=against_id,
                counterparty=counterparty,
                reference_number=reference_number,
                invoice_number=document_number,
                created_by=created_by,
            )
        else:
            payment = service.record_bill_payment(
                when,
                value,
                payment_account_id=bank_id,
                payable_account_id=against_id,
                counterparty=counterparty,
                reference_number=reference_number,
                bill_number=document_number,
                created_by=created_by,
            )
        click.echo(
            f"Recorded {payment.kind.value.lower()} payment {payment.id} for {format_money(payment.amount)} "
            f"(journal entry {payment.journal_entry_id})"
        )
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)


@payment_group.command("list")
@click.option("--open", "unreconciled_only", is_flag=True, help="Only payments not yet matched to a bank row")
@click.pass_context
def list_payments(ctx, unreconciled_only: bool):
    """List recorded payments."""
    payments = PaymentService(ctx.obj["db"]).list_payments(unreconciled_only=unreconciled_only)
    if not payments:
        click.echo("No payments found.")
        return

    for p in payments:
        state = f"matched to transaction {p.reconciled_transaction_id}" if p.reconciled_transaction_id else "open"
        click.echo(
            f"{p.id:4d}  {p.payment_date.isoformat()}  {p.kind.value:8s}  {format_money(p.amount):>12s}  "
            f"{p.counterparty or '':20s}  {state}"
        )


def register_commands(cli):
    """Register payment commands with main CLI."""
    cli.add_command(payment_group, name="payment")
