"""Reconciliation command."""

import click

from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.domain.advisor import AnthropicAdvisor
from ledgerflow.domain.entities import Confidence
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.reconciliation import ReconciliationService


@click.command("reconcile")
@click.option("--batch", "batch_id", type=int, help="Only reconcile rows from this import batch")
@click.option("--no-ai", is_flag=True, help="Use bank rules only")
@click.pass_context
def reconcile(ctx, batch_id: int | None, no_ai: bool):
    """Match Pending rows to recorded payments and suggest accounts.

    Rows without a confident match are categorized by bank rules, then by
    the AI advisor when ANTHROPIC_API_KEY is set.
    """
    settings = ctx.obj["settings"]
    advisor = None
    if not no_ai and settings.anthropic_api_key:
        advisor = AnthropicAdvisor(
            api_key=settings.anthropic_api_key, model=settings.ai_model, timeout=settings.ai_timeout
        )

    service = ReconciliationService(ctx.obj["db"], settings=settings, advisor=advisor)
    try:
        summary = service.process_batch(batch_id=batch_id)
    except DomainError as e:
        handle_domain_error(ctx, e)
    finally:
        service.close()

    click.echo(f"\nReconciled {summary.processed} transactions:")
    click.echo(
        f"  Matched: {summary.matched[Confidence.HIGH]} high, "
        f"{summary.matched[Confidence.MEDIUM]} medium, {summary.matched[Confidence.LOW]} low"
    )
    click.echo(f"  Categorized: {summary.categorized}")
    click.echo(f"  Needs review: {summary.needs_review}")
    if summary.errors:
        click.echo(f"  Errors: {len(summary.errors)}")
        for error in summary.errors:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile)
