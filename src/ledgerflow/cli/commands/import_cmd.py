"""Bank file import command."""

import click

from ledgerflow.cli.error_handling import handle_domain_error
from ledgerflow.domain.dialects import DIALECTS_BY_NAME
from ledgerflow.domain.errors import DomainError
from ledgerflow.domain.importer import ImportService


@click.command("import")
@click.argument("file_path", metavar="FILE", type=click.Path(exists=True))
@click.option("--source", "source_account_id", type=int, help="Source account every row belongs to")
@click.option(
    "--dialect",
    type=click.Choice(sorted(DIALECTS_BY_NAME), case_sensitive=False),
    help="Force a CSV dialect instead of detecting it",
)
@click.pass_context
def import_file(ctx, file_path: str, source_account_id: int | None, dialect: str | None):
    """Import a CSV, OFX or QFX export from a bank or card issuer."""
    settings = ctx.obj["settings"]
    service = ImportService(ctx.obj["db"], auto_create_ledger_accounts=settings.auto_create_ledger_accounts)

    try:
        result = service.import_file(file_path, source_account_id=source_account_id, dialect=dialect)
        click.echo(f"\nImport complete (batch {result.batch_id}, {result.dialect}):")
        click.echo(f"  Imported: {result.imported} transactions")
        click.echo(f"  Skipped: {result.skipped} duplicates")
        if result.errors:
            click.echo(f"  Errors: {len(result.errors)}")
            for error in result.errors:
                click.echo(f"    {error}", err=True)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_file)
