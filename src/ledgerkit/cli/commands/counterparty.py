"""Customer and vendor commands."""

import click
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_amount, rule
from ledgerkit.domain.counterparty import CounterpartyService
from ledgerkit.utils.amount_parser import parse_amount


def _details(email, phone, address, tax_id, credit_limit, payment_terms, notes) -> dict:
    details = {
        "email": email,
        "phone": phone,
        "address": address,
        "tax_id": tax_id,
        "payment_terms": payment_terms,
        "notes": notes,
    }
    if credit_limit is not None:
        details["credit_limit"] = parse_amount(credit_limit)
    return {key: value for key, value in details.items() if value is not None}


def _detail_options(command):
    for option in reversed(
        (
            click.option("--email"),
            click.option("--phone"),
            click.option("--address"),
            click.option("--tax-id"),
            click.option("--credit-limit"),
            click.option("--terms", "payment_terms", type=int, help="Payment terms in days"),
            click.option("--notes"),
        )
    ):
        command = option(command)
    return command


def _make_group(kind: str):
    """Build the command group for customers or vendors."""
    label = kind.capitalize()

    @click.group(help=f"Manage {kind}s.")
    def group():
        pass

    @group.command("create", help=f"Create a {kind}.")
    @click.argument("name")
    @_detail_options
    @click.pass_context
    def create(ctx, name, email, phone, address, tax_id, credit_limit, payment_terms, notes):
        service = CounterpartyService(ctx.obj["db"])
        try:
            details = _details(email, phone, address, tax_id, credit_limit, payment_terms, notes)
            new_id = getattr(service, f"create_{kind}")(name, **details)
            click.echo(f"Created {kind} '{name}' (ID: {new_id})")
        except ValueError as e:
            handle_domain_error(ctx, e)

    @group.command("list", help=f"List {kind}s with their outstanding balances.")
    @click.option("--all", "include_inactive", is_flag=True, help="Include inactive")
    @click.pass_context
    def list_all(ctx, include_inactive):
        service = CounterpartyService(ctx.obj["db"])
        items = getattr(service, f"list_{kind}s")(include_inactive=include_inactive)
        if not items:
            click.echo(f"No {kind}s found.")
            return
        click.echo(f"\n{label}s:")
        click.echo(rule(60))
        for item in items:
            status = "" if item.is_active else " [inactive]"
            click.echo(f"ID: {item.id:3d} | {item.name:30s} | {format_amount(item.balance):>14s}{status}")

    @group.command("update", help=f"Update {kind} details.")
    @click.argument("item_id", type=int)
    @click.option("--name")
    @_detail_options
    @click.pass_context
    def update(ctx, item_id, name, email, phone, address, tax_id, credit_limit, payment_terms, notes):
        service = CounterpartyService(ctx.obj["db"])
        try:
            fields = _details(email, phone, address, tax_id, credit_limit, payment_terms, notes)
            if name is not None:
                fields["name"] = name
            if not fields:
                click.echo("Nothing to update.")
                return
            getattr(service, f"update_{kind}")(item_id, **fields)
            click.echo(f"Updated {kind} {item_id}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    @group.command("deactivate", help=f"Deactivate a {kind}.")
    @click.argument("item_id", type=int)
    @click.pass_context
    def deactivate(ctx, item_id):
        service = CounterpartyService(ctx.obj["db"])
        try:
            getattr(service, f"deactivate_{kind}")(item_id)
            click.echo(f"Deactivated {kind} {item_id}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    @group.command("delete", help=f"Delete a {kind} without invoices.")
    @click.argument("item_id", type=int)
    @click.pass_context
    def delete(ctx, item_id):
        service = CounterpartyService(ctx.obj["db"])
        try:
            getattr(service, f"delete_{kind}")(item_id)
            click.echo(f"Deleted {kind} {item_id}")
        except ValueError as e:
            handle_domain_error(ctx, e)

    return group


customer_group = _make_group("customer")
vendor_group = _make_group("vendor")


def register_commands(cli):
    """Register customer and vendor commands with main CLI."""
    cli.add_command(customer_group, name="customer")
    cli.add_command(vendor_group, name="vendor")
