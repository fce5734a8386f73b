"""Commands that record business events as journal entries."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import PaymentMethod
from ledgerkit.domain.posting import PostingService
from ledgerkit.utils.amount_parser import parse_amount

PAYMENT_METHODS = [m.value for m in PaymentMethod]


@click.group()
def record_group():
    """Record sales and purchases."""
    pass


@record_group.command("sale")
@click.argument("amount")
@click.option("--method", type=click.Choice(PAYMENT_METHODS), default="cash", show_default=True)
@click.option("--tax-rate", "tax_rate_id", type=int, help="Tax rate ID to apply")
@click.option("--tax", "tax_amount", help="Explicit tax amount added on top")
@click.option("--cost", default="0", help="Cost of the goods sold (moves inventory to COGS)")
@click.option("--account", help="Revenue account (defaults to sales revenue)")
@click.option("--date", "sale_date", default="today", help="Sale date (defaults to today)")
@click.option("--reference", help="Business reference, e.g. a receipt number")
@click.pass_context
def record_sale(
    ctx,
    amount: str,
    method: str,
    tax_rate_id: int | None,
    tax_amount: str | None,
    cost: str,
    account: str | None,
    sale_date: str,
    reference: str | None,
):
    """Record a paid sale.

    Examples:
        ledgerkit record sale 150 --cost 100
        ledgerkit record sale 115 --method card --tax-rate 1
    """
    db = ctx.obj["db"]
    on = parse_date_or_exit(ctx, sale_date, "date")
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None

    try:
        entry_id = PostingService(db).record_sale(
            sale_date=on,
            amount=parse_amount(amount),
            payment_method=PaymentMethod(method),
            tax_rate_id=tax_rate_id,
            tax_amount=parse_amount(tax_amount) if tax_amount else None,
            cost_of_goods=parse_amount(cost),
            account_id=account_id,
            reference=reference,
        )
        click.echo(f"Recorded sale as journal entry #{entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@record_group.command("purchase")
@click.argument("amount")
@click.option("--due", is_flag=True, help="Bought on credit (accounts payable) instead of paid")
@click.option("--method", type=click.Choice(PAYMENT_METHODS), default="cash", show_default=True)
@click.option("--account", help="Inventory or expense account (defaults to inventory)")
@click.option("--date", "purchase_date", default="today", help="Purchase date (defaults to today)")
@click.option("--reference", help="Business reference, e.g. a supplier bill number")
@click.pass_context
def record_purchase(
    ctx,
    amount: str,
    due: bool,
    method: str,
    account: str | None,
    purchase_date: str,
    reference: str | None,
):
    """Record a purchase of inventory or an expense.

    Examples:
        ledgerkit record purchase 100
        ledgerkit record purchase 450 --account 6-301 --due
    """
    db = ctx.obj["db"]
    on = parse_date_or_exit(ctx, purchase_date, "date")
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None

    try:
        entry_id = PostingService(db).record_purchase(
            purchase_date=on,
            amount=parse_amount(amount),
            paid=not due,
            payment_method=PaymentMethod(method),
            account_id=account_id,
            reference=reference,
        )
        click.echo(f"Recorded purchase as journal entry #{entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register business event commands with main CLI."""
    cli.add_command(record_group, name="record")
