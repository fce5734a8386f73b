"""Tax rate and tax settings commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_amount
from ledgerkit.domain.account import TAX_PAYABLE_CODE, AccountService
from ledgerkit.domain.tax import TaxService
from ledgerkit.utils.amount_parser import parse_amount


@click.group()
def tax_group():
    """Manage tax rates and settings."""
    pass


@tax_group.command("add")
@click.argument("name")
@click.argument("rate")
@click.option(
    "--account",
    default=TAX_PAYABLE_CODE,
    show_default=True,
    help="Liability account collected tax is credited to",
)
@click.option("--description", help="Tax rate description")
@click.pass_context
def add_tax_rate(ctx, name: str, rate: str, account: str, description: str | None):
    """Add a tax rate. RATE is a fraction (0.15) or a percentage (15%).

    Examples:
        ledgerkit tax add "VAT" 15%
        ledgerkit tax add "Reduced VAT" 0.05 --account 2-201
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    text = rate.strip()
    try:
        value = parse_amount(text.rstrip("%")) / 100 if text.endswith("%") else text
        tax_rate_id = TaxService(db).add_tax_rate(
            name, value, account_id, description=description
        )
        click.echo(f"Created tax rate '{name}' (ID: {tax_rate_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@tax_group.command("list")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive rates")
@click.pass_context
def list_tax_rates(ctx, include_inactive: bool):
    """List tax rates."""
    db = ctx.obj["db"]
    service = TaxService(db)
    rates = service.list_tax_rates(include_inactive=include_inactive)
    if not rates:
        click.echo("No tax rates found.")
        return
    default_id = service.get_settings().default_tax_rate_id
    for rate in rates:
        marks = []
        if rate.id == default_id:
            marks.append("default")
        if not rate.is_active:
            marks.append("inactive")
        suffix = f" [{', '.join(marks)}]" if marks else ""
        click.echo(f"ID: {rate.id:3d} | {rate.name:24s} | {rate.rate * 100:6.2f}%{suffix}")


@tax_group.command("deactivate")
@click.argument("tax_rate_id", type=int)
@click.pass_context
def deactivate_tax_rate(ctx, tax_rate_id: int):
    """Deactivate a tax rate."""
    db = ctx.obj["db"]
    try:
        TaxService(db).deactivate_tax_rate(tax_rate_id)
        click.echo(f"Deactivated tax rate {tax_rate_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@tax_group.command("settings")
@click.option("--enable/--disable", "enabled", default=None, help="Turn tax on or off")
@click.option("--default-rate", "default_tax_rate_id", type=int, help="Default tax rate ID")
@click.option(
    "--inclusive/--exclusive",
    "include_tax_in_price",
    default=None,
    help="Prices include tax, or tax is added on top",
)
@click.option("--show-on-receipts/--hide-on-receipts", "show_tax_on_receipts", default=None)
@click.pass_context
def tax_settings(ctx, enabled, default_tax_rate_id, include_tax_in_price, show_tax_on_receipts):
    """Show or update tax settings."""
    db = ctx.obj["db"]
    try:
        settings = TaxService(db).update_settings(
            enabled=enabled,
            default_tax_rate_id=default_tax_rate_id,
            include_tax_in_price=include_tax_in_price,
            show_tax_on_receipts=show_tax_on_receipts,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Tax enabled:        {'yes' if settings.enabled else 'no'}")
    click.echo(f"Default rate:       {settings.default_tax_rate_id or '-'}")
    click.echo(f"Prices include tax: {'yes' if settings.include_tax_in_price else 'no'}")
    click.echo(f"Show on receipts:   {'yes' if settings.show_tax_on_receipts else 'no'}")


@tax_group.command("calc")
@click.argument("amount")
@click.option("--rate", "tax_rate_id", type=int, help="Tax rate ID (defaults to the default rate)")
@click.pass_context
def calculate(ctx, amount: str, tax_rate_id: int | None):
    """Split an amount into subtotal and tax."""
    db = ctx.obj["db"]
    try:
        breakdown = TaxService(db).calculate_tax(parse_amount(amount), tax_rate_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    click.echo(f"Subtotal: {format_amount(breakdown.subtotal)}")
    click.echo(f"Tax:      {format_amount(breakdown.tax)} ({breakdown.rate * 100:.2f}%)")
    click.echo(f"Total:    {format_amount(breakdown.total)}")


def register_commands(cli):
    """Register tax commands with main CLI."""
    cli.add_command(tax_group, name="tax")
