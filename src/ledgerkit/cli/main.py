"""Main CLI entry point."""

import logging

import click
from ledgerkit.database.factories import create_sqlite_database

from ledgerkit.cli.commands import (
    account,
    counterparty,
    invoice,
    journal,
    record,
    report,
    snapshot,
    tax,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERKIT_DB_PATH environment variable)",
    envvar="LEDGERKIT_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    envvar="LEDGERKIT_LOG_LEVEL",
    help="Logging level (overrides LEDGERKIT_LOG_LEVEL environment variable)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str):
    """Ledgerkit - double-entry bookkeeping.

    Keep a chart of accounts and a balanced journal, track invoices and
    payments, and build trial balances and financial statements.
    """
    ctx.ensure_object(dict)
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db


account.register_commands(cli)
journal.register_commands(cli)
record.register_commands(cli)
report.register_commands(cli)
invoice.register_commands(cli)
counterparty.register_commands(cli)
tax.register_commands(cli)
snapshot.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
