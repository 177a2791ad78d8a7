"""Main CLI entry point."""

import click

from ledgerflow.config import load_settings
from ledgerflow.database.factories import create_sqlite_database
from ledgerflow.logging_config import configure_logging

# Import and register all commands at module level
from ledgerflow.cli.commands import (
    account,
    import_cmd,
    journal,
    payment,
    post,
    reconcile,
    review,
    rule,
    source,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERFLOW_DB_PATH environment variable)",
    envvar="LEDGERFLOW_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for messages written to stderr (overrides LEDGERFLOW_LOG_LEVEL)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Ledgerflow - bank import, reconciliation and double-entry posting.

    Import bank and card exports, match them against recorded payments,
    categorize the rest, review the results and post balanced journal
    entries to the ledger.
    """
    ctx.ensure_object(dict)

    try:
        settings = load_settings()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    configure_logging(level=log_level or settings.log_level, json=settings.log_json)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path or settings.db_path)
        db.connect()
        db.initialize_schema()
        ctx.call_on_close(db.disconnect)
        ctx.obj["db"] = db
        ctx.obj["settings"] = settings


# Register all commands
account.register_commands(cli)
source.register_commands(cli)
rule.register_commands(cli)
import_cmd.register_commands(cli)
reconcile.register_commands(cli)
review.register_commands(cli)
post.register_commands(cli)
journal.register_commands(cli)
payment.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
