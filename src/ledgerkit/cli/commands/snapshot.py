"""Snapshot export and import commands."""

from pathlib import Path

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.snapshot import SnapshotService


@click.group()
def snapshot_group():
    """Export or load the whole ledger as JSON."""
    pass


@snapshot_group.command("export")
@click.argument("path", type=click.Path(dir_okay=False), required=False)
@click.pass_context
def export_snapshot(ctx, path: str | None):
    """Export the ledger to PATH (or stdout)."""
    db = ctx.obj["db"]
    text = SnapshotService(db).dump_json(Path(path) if path else None)
    if path:
        click.echo(f"Exported ledger to {path}")
    else:
        click.echo(text)


@snapshot_group.command("import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def import_snapshot(ctx, path: str, yes: bool):
    """Replace the ledger with the snapshot at PATH."""
    db = ctx.obj["db"]
    if not yes and not click.confirm("This replaces the entire ledger. Continue?"):
        click.echo("Import cancelled.")
        return
    try:
        warnings = SnapshotService(db).load_json(Path(path))
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    for warning in warnings:
        click.echo(f"WARNING: {warning.message}", err=True)
    click.echo(f"Imported ledger from {path}")


def register_commands(cli):
    """Register snapshot commands with main CLI."""
    cli.add_command(snapshot_group, name="snapshot")
