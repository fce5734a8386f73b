"""Chart of accounts commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_amount, rule
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import AccountType
from ledgerkit.utils.amount_parser import parse_amount

ACCOUNT_TYPES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code")
@click.argument("name")
@click.option(
    "--type", "account_type", type=click.Choice(ACCOUNT_TYPES), required=True, help="Account type"
)
@click.option("--opening-balance", default="0", help="Opening balance on the normal side")
@click.option("--opening-date", help="Date of the opening balance (defaults to today)")
@click.option(
    "--non-current", is_flag=True, help="Non-current (fixed) asset or long-term liability"
)
@click.option("--cash", "is_cash", is_flag=True, help="Account holds cash or bank funds")
@click.option("--description", help="Account description")
@click.option("--parent", help="Parent account code or ID")
@click.pass_context
def create_account(
    ctx,
    code: str,
    name: str,
    account_type: str,
    opening_balance: str,
    opening_date: str | None,
    non_current: bool,
    is_cash: bool,
    description: str | None,
    parent: str | None,
):
    """Create a new account.

    Examples:
        ledgerkit account create 1-103 "Petty Cash" --type asset --cash
        ledgerkit account create 1-401 "Equipment" --type asset --non-current
        ledgerkit account create 2-301 "Bank Loan" --type liability --opening-balance 5000
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    parent_id = resolve_account_or_exit(ctx, service, parent) if parent else None
    on = parse_date_or_exit(ctx, opening_date, "opening date")

    try:
        account_id = service.add_account(
            code=code,
            name=name,
            account_type=AccountType(account_type),
            opening_balance=parse_amount(opening_balance),
            opening_date=on,
            is_current=not non_current,
            is_cash=is_cash,
            description=description,
            parent_id=parent_id,
        )
        click.echo(f"Created account {code} '{name}' (ID: {account_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--type", "account_type", type=click.Choice(ACCOUNT_TYPES), help="Filter by type")
@click.option("--all", "include_inactive", is_flag=True, help="Include inactive accounts")
@click.pass_context
def list_accounts(ctx, account_type: str | None, include_inactive: bool):
    """List accounts with their current balances."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts(
        account_type=AccountType(account_type) if account_type else None,
        include_inactive=include_inactive,
    )
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo(rule())
    for acc in accounts:
        flags = []
        if not acc.is_active:
            flags.append("inactive")
        if acc.is_cash:
            flags.append("cash")
        if acc.account_type in (AccountType.ASSET, AccountType.LIABILITY) and not acc.is_current:
            flags.append("non-current")
        suffix = f" [{', '.join(flags)}]" if flags else ""
        click.echo(
            f"ID: {acc.id:3d} | {acc.code:8s} | {acc.name:28s} | {acc.account_type.value:9s} "
            f"| {format_amount(acc.balance):>14s}{suffix}"
        )


@account_group.command("seed")
@click.pass_context
def seed_accounts(ctx):
    """Create the default chart of accounts (existing codes are kept)."""
    db = ctx.obj["db"]
    service = AccountService(db)

    created = service.seed_chart_of_accounts()
    if created:
        click.echo(f"Created {len(created)} account{'s' if len(created) != 1 else ''}.")
    else:
        click.echo("Chart of accounts already seeded.")


@account_group.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--as-of", help="Balance at the end of this date (defaults to now)")
@click.pass_context
def account_balance(ctx, account: str, as_of: str | None):
    """Show an account balance replayed from the journal.

    ACCOUNT can be an account code, name or ID.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    cutoff = parse_date_or_exit(ctx, as_of, "as-of date")

    try:
        balance = BalanceService(db).balance_as_of(account_id, cutoff)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return
    acc = service.get_account(account_id)
    click.echo(f"{acc.code} {acc.name}: {format_amount(balance)} (as of {cutoff or 'now'})")


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str):
    """Deactivate an account. Its history is kept."""
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    try:
        service.deactivate_account(account_id)
        click.echo(f"Deactivated account {account}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("activate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def activate_account(ctx, account: str):
    """Re-activate an account."""
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    try:
        service.activate_account(account_id)
        click.echo(f"Activated account {account}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool):
    """Delete an account that has no journal history.

    Accounts that have been posted to can only be deactivated.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)
    account_obj = service.get_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account {account_obj.code} '{account_obj.name}'?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
        click.echo(f"Deleted account {account_obj.code} '{account_obj.name}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
