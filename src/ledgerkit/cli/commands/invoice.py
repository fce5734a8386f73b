"""Invoice, payment and aging commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_amount, rule
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import (
    AgingKind,
    InvoiceDraft,
    InvoiceStatus,
    InvoiceType,
    PaymentMethod,
)
from ledgerkit.domain.invoice import InvoiceService
from ledgerkit.utils.amount_parser import parse_amount


@click.group()
def invoice_group():
    """Manage invoices, bills and payments."""
    pass


@invoice_group.command("create")
@click.argument("subtotal")
@click.option("--customer", "customer_id", type=int, help="Customer ID (sales invoice)")
@click.option("--vendor", "vendor_id", type=int, help="Vendor ID (purchase bill)")
@click.option("--tax-rate", "tax_rate_id", type=int, help="Tax rate ID")
@click.option("--tax", "tax_amount", help="Explicit tax amount")
@click.option("--account", help="Revenue account (sales) or inventory/expense account (bills)")
@click.option("--number", "invoice_number", help="Invoice number (auto-assigned when omitted)")
@click.option("--date", "issue_date", default="today", help="Issue date (defaults to today)")
@click.option("--due", "due_date", help="Due date (defaults to issue date plus payment terms)")
@click.option("--draft", is_flag=True, help="Keep as draft; nothing is posted")
@click.option("--notes", help="Free-form notes")
@click.pass_context
def create_invoice(
    ctx,
    subtotal: str,
    customer_id: int | None,
    vendor_id: int | None,
    tax_rate_id: int | None,
    tax_amount: str | None,
    account: str | None,
    invoice_number: str | None,
    issue_date: str,
    due_date: str | None,
    draft: bool,
    notes: str | None,
):
    """Create a sales invoice (--customer) or purchase bill (--vendor).

    Examples:
        ledgerkit invoice create 1000 --customer 1
        ledgerkit invoice create 250 --vendor 2 --tax-rate 1 --due 2024-04-30
    """
    db = ctx.obj["db"]
    if (customer_id is None) == (vendor_id is None):
        click.echo("Error: Specify exactly one of --customer or --vendor.", err=True)
        ctx.exit(1)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None
    issued = parse_date_or_exit(ctx, issue_date, "issue date")
    due = parse_date_or_exit(ctx, due_date, "due date")

    try:
        invoice_id = InvoiceService(db).create_invoice(
            InvoiceDraft(
                invoice_type=InvoiceType.SALE if customer_id is not None else InvoiceType.PURCHASE,
                issue_date=issued,
                subtotal=parse_amount(subtotal),
                tax_amount=parse_amount(tax_amount) if tax_amount else None,
                due_date=due,
                customer_id=customer_id,
                vendor_id=vendor_id,
                tax_rate_id=tax_rate_id,
                account_id=account_id,
                invoice_number=invoice_number,
                issue=not draft,
                notes=notes,
            )
        )
        invoice = InvoiceService(db).get_invoice(invoice_id)
        click.echo(
            f"Created invoice {invoice.invoice_number} (ID: {invoice_id}) for "
            f"{format_amount(invoice.total_amount)}, due {invoice.due_date}"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("issue")
@click.argument("invoice_id", type=int)
@click.pass_context
def issue_invoice(ctx, invoice_id: int):
    """Issue a draft invoice and post it to the journal."""
    db = ctx.obj["db"]
    try:
        entry_id = InvoiceService(db).issue_invoice(invoice_id)
        click.echo(f"Issued invoice {invoice_id} (journal entry #{entry_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("pay")
@click.argument("invoice_id", type=int)
@click.argument("amount")
@click.option(
    "--method",
    type=click.Choice([m.value for m in PaymentMethod]),
    default="cash",
    show_default=True,
)
@click.option("--date", "payment_date", default="today", help="Payment date (defaults to today)")
@click.option("--reference", help="Payment reference")
@click.pass_context
def pay_invoice(
    ctx, invoice_id: int, amount: str, method: str, payment_date: str, reference: str | None
):
    """Record a payment against an invoice."""
    db = ctx.obj["db"]
    on = parse_date_or_exit(ctx, payment_date, "payment date")
    service = InvoiceService(db)
    try:
        payment_id = service.record_payment(
            invoice_id,
            parse_amount(amount),
            payment_method=PaymentMethod(method),
            payment_date=on,
            reference=reference,
        )
        invoice = service.get_invoice(invoice_id)
        click.echo(
            f"Recorded payment {payment_id}; invoice {invoice.invoice_number} is now "
            f"{invoice.status.value} ({format_amount(invoice.outstanding)} outstanding)"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("list")
@click.option("--type", "invoice_type", type=click.Choice([t.value for t in InvoiceType]))
@click.option("--status", type=click.Choice([s.value for s in InvoiceStatus]))
@click.option("--customer", "customer_id", type=int)
@click.option("--vendor", "vendor_id", type=int)
@click.pass_context
def list_invoices(
    ctx,
    invoice_type: str | None,
    status: str | None,
    customer_id: int | None,
    vendor_id: int | None,
):
    """List invoices."""
    db = ctx.obj["db"]
    invoices = InvoiceService(db).list_invoices(
        invoice_type=InvoiceType(invoice_type) if invoice_type else None,
        customer_id=customer_id,
        vendor_id=vendor_id,
        status=InvoiceStatus(status) if status else None,
    )
    if not invoices:
        click.echo("No invoices found.")
        return

    click.echo("\nInvoices:")
    click.echo(rule(88))
    for inv in invoices:
        click.echo(
            f"ID: {inv.id:3d} | {inv.invoice_number:10s} | {inv.issue_date} | due {inv.due_date} "
            f"| {format_amount(inv.total_amount):>12s} | paid {format_amount(inv.paid_amount):>12s} "
            f"| {inv.status.value}"
        )


@invoice_group.command("payments")
@click.argument("invoice_id", type=int, required=False)
@click.pass_context
def list_payments(ctx, invoice_id: int | None):
    """List payments, optionally for one invoice."""
    db = ctx.obj["db"]
    payments = InvoiceService(db).list_payments(invoice_id)
    if not payments:
        click.echo("No payments found.")
        return
    for payment in payments:
        click.echo(
            f"ID: {payment.id:3d} | invoice {payment.invoice_id:3d} | {payment.payment_date} "
            f"| {format_amount(payment.amount):>12s} | {payment.payment_method.value}"
        )


@invoice_group.command("cancel")
@click.argument("invoice_id", type=int)
@click.option("--reason", default="", help="Why the invoice is cancelled")
@click.pass_context
def cancel_invoice(ctx, invoice_id: int, reason: str):
    """Cancel an unpaid invoice, reversing its journal entry."""
    db = ctx.obj["db"]
    try:
        InvoiceService(db).cancel_invoice(invoice_id, reason)
        click.echo(f"Cancelled invoice {invoice_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("delete")
@click.argument("invoice_id", type=int)
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_invoice(ctx, invoice_id: int, yes: bool):
    """Delete an invoice that has no payments."""
    db = ctx.obj["db"]
    if not yes and not click.confirm(f"Are you sure you want to delete invoice {invoice_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        InvoiceService(db).delete_invoice(invoice_id)
        click.echo(f"Deleted invoice {invoice_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@invoice_group.command("aging")
@click.argument("kind", type=click.Choice([k.value for k in AgingKind]))
@click.option("--as-of", help="Report date (defaults to today)")
@click.pass_context
def aging(ctx, kind: str, as_of: str | None):
    """Show the receivable or payable aging report."""
    db = ctx.obj["db"]
    on = parse_date_or_exit(ctx, as_of, "as-of date")
    report = InvoiceService(db).aging_report(AgingKind(kind), on)

    click.echo(f"\n{kind.capitalize()} aging as of {report.as_of}")
    click.echo(rule(60))
    for bucket in report.buckets:
        click.echo(f"{bucket.period:>6s} days  {bucket.count:4d}  {format_amount(bucket.amount):>16s}")
    click.echo(rule(60))
    click.echo(f"{'Total':>11s}        {format_amount(report.total):>16s}")
    for detail in report.details:
        click.echo(
            f"  {detail.invoice_number:10s} {detail.name[:20]:20s} due {detail.due_date} "
            f"{detail.days_overdue:4d}d {format_amount(detail.amount):>12s}"
        )


def register_commands(cli):
    """Register invoice commands with main CLI."""
    cli.add_command(invoice_group, name="invoice")
