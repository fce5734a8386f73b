"""Journal entry commands."""

import click
from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import (
    parse_date_or_exit,
    period_options,
    pop_period_flags,
    resolve_cli_date_range,
)
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_amount, rule
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import JournalEntryDraft, JournalLineDraft, ReferenceType
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.amount_parser import parse_amount


def _parse_line(ctx, account_service, option_value: str, side: str) -> JournalLineDraft:
    """Parse an ACCOUNT=AMOUNT option value into a journal line."""
    account, sep, amount = option_value.rpartition("=")
    if not sep or not account:
        click.echo(f"Error: Invalid {side} '{option_value}'. Use ACCOUNT=AMOUNT, e.g. 1-101=100.00", err=True)
        ctx.exit(1)
    account_id = resolve_account_or_exit(ctx, account_service, account)
    try:
        value = parse_amount(amount)
    except ValueError as e:
        handle_domain_error(ctx, e)
    if side == "debit":
        return JournalLineDraft(account_id=account_id, debit=value)
    return JournalLineDraft(account_id=account_id, credit=value)


@click.group()
def journal_group():
    """Post, reverse and list journal entries."""
    pass


@journal_group.command("post")
@click.argument("description")
@click.option("--debit", "debits", multiple=True, help="ACCOUNT=AMOUNT to debit (repeatable)")
@click.option("--credit", "credits", multiple=True, help="ACCOUNT=AMOUNT to credit (repeatable)")
@click.option("--date", "entry_date", default="today", help="Entry date (defaults to today)")
@click.option("--reference", help="Business reference, e.g. a receipt number")
@click.pass_context
def post_entry(ctx, description: str, debits, credits, entry_date: str, reference: str | None):
    """Post a manual journal entry.

    ACCOUNT can be an account code, name or ID. Debits and credits must
    balance.

    Examples:
        ledgerkit journal post "Owner investment" --debit 1-102=5000 --credit 3-101=5000
        ledgerkit journal post "Rent" --debit 6-201=1200 --credit 1-102=1200 --date 2024-03-01
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    on = parse_date_or_exit(ctx, entry_date, "date")

    lines = [_parse_line(ctx, account_service, option, "debit") for option in debits]
    lines += [_parse_line(ctx, account_service, option, "credit") for option in credits]

    try:
        entry_id = JournalService(db).post_entry(
            JournalEntryDraft(
                date=on,
                description=description,
                lines=tuple(lines),
                reference=reference,
                reference_type=ReferenceType.MANUAL,
            )
        )
        click.echo(f"Posted journal entry #{entry_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@journal_group.command("reverse")
@click.argument("entry_id", type=int)
@click.option("--reason", required=True, help="Why the entry is reversed")
@click.option("--date", "reversal_date", help="Reversal date (defaults to today)")
@click.pass_context
def reverse_entry(ctx, entry_id: int, reason: str, reversal_date: str | None):
    """Reverse a posted journal entry."""
    db = ctx.obj["db"]
    on = parse_date_or_exit(ctx, reversal_date, "date")
    try:
        reversal_id = JournalService(db).reverse_entry(entry_id, reason, on)
        click.echo(f"Reversed journal entry #{entry_id} with #{reversal_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@journal_group.command("list")
@period_options
@click.option("--account", help="Only entries touching this account (code, name or ID)")
@click.option(
    "--type",
    "reference_type",
    type=click.Choice([t.value for t in ReferenceType]),
    help="Only entries of this kind",
)
@click.pass_context
def list_entries(ctx, account: str | None, reference_type: str | None, **kwargs):
    """List journal entries with their lines."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    start, end = resolve_cli_date_range(
        ctx,
        start_date=kwargs.pop("start_date"),
        end_date=kwargs.pop("end_date"),
        period_flags=pop_period_flags(kwargs),
    )
    account_id = resolve_account_or_exit(ctx, account_service, account) if account else None

    entries = JournalService(db).list_entries(
        start_date=start,
        end_date=end,
        account_id=account_id,
        reference_type=ReferenceType(reference_type) if reference_type else None,
    )
    if not entries:
        click.echo("No journal entries found.")
        return

    codes = {acc.id: acc.code for acc in account_service.list_accounts(include_inactive=True)}
    for entry in entries:
        status = ""
        if entry.is_reversed:
            status = " [reversed]"
        elif entry.reversal_of is not None:
            status = f" [reverses #{entry.reversal_of}]"
        click.echo(f"\n#{entry.id} {entry.date} {entry.description}{status}")
        if entry.reference:
            click.echo(f"  Reference: {entry.reference}")
        click.echo("  " + rule(56))
        for line in entry.lines:
            debit = format_amount(line.debit) if line.debit else ""
            credit = format_amount(line.credit) if line.credit else ""
            click.echo(f"  {codes.get(line.account_id, '?'):8s} {debit:>22s} {credit:>22s}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")
