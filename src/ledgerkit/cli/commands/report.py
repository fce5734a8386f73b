"""Report commands."""

from datetime import date

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
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.reports import ReportService
from ledgerkit.utils.date_parser import get_date_range


def _period(ctx, kwargs) -> tuple[date, date]:
    start, end = resolve_cli_date_range(
        ctx,
        start_date=kwargs.pop("start_date"),
        end_date=kwargs.pop("end_date"),
        period_flags=pop_period_flags(kwargs),
        default_range=get_date_range("this-month"),
    )
    if start is None or end is None:
        click.echo("Error: Both --start-date and --end-date are required.", err=True)
        ctx.exit(1)
    return start, end


def _echo_line(label: str, amount, indent: int = 2, width: int = 48) -> None:
    click.echo(f"{' ' * indent}{label:<{width - indent}} {format_amount(amount):>16s}")


@click.group()
def report_group():
    """Build ledger reports."""
    pass


@report_group.command("trial-balance")
@click.option("--as-of", help="Report date (defaults to now)")
@click.pass_context
def trial_balance(ctx, as_of: str | None):
    """Show the trial balance."""
    db = ctx.obj["db"]
    cutoff = parse_date_or_exit(ctx, as_of, "as-of date")
    report = ReportService(db).trial_balance(cutoff)

    click.echo(f"\nTrial balance as of {cutoff or date.today()}")
    click.echo(rule())
    click.echo(f"{'Account':<38s} {'Debit':>16s} {'Credit':>16s}")
    click.echo(rule())
    for row in report.rows:
        label = f"{row.account.code} {row.account.name}"
        debit = format_amount(row.debit) if row.debit else ""
        credit = format_amount(row.credit) if row.credit else ""
        click.echo(f"{label:<38s} {debit:>16s} {credit:>16s}")
    click.echo(rule())
    click.echo(
        f"{'Total':<38s} {format_amount(report.total_debit):>16s} "
        f"{format_amount(report.total_credit):>16s}"
    )
    if not report.balanced:
        click.echo("WARNING: trial balance does not balance", err=True)


@report_group.command("balance-sheet")
@click.option("--as-of", help="Report date (defaults to now)")
@click.pass_context
def balance_sheet(ctx, as_of: str | None):
    """Show the balance sheet."""
    db = ctx.obj["db"]
    cutoff = parse_date_or_exit(ctx, as_of, "as-of date")
    sheet = ReportService(db).balance_sheet(cutoff)

    click.echo(f"\nBalance sheet as of {cutoff or date.today()}")
    click.echo(rule(66))
    for title, section in (("Assets", sheet.assets), ("Liabilities", sheet.liabilities)):
        click.echo(title)
        for heading, lines in (("Current", section.current), ("Non-current", section.non_current)):
            if not lines:
                continue
            click.echo(f"  {heading}")
            for line in lines:
                _echo_line(f"{line.account.code} {line.account.name}", line.amount, indent=4)
        _echo_line(f"Total {title.lower()}", section.total)
    click.echo("Equity")
    for line in sheet.equity.accounts:
        _echo_line(f"{line.account.code} {line.account.name}", line.amount, indent=4)
    _echo_line("Current earnings", sheet.equity.current_earnings, indent=4)
    _echo_line("Total equity", sheet.equity.total)
    click.echo(rule(66))
    _echo_line("Liabilities and equity", sheet.liabilities.total + sheet.equity.total, indent=0)
    for warning in sheet.warnings:
        click.echo(f"WARNING: {warning.message}", err=True)


@report_group.command("income-statement")
@period_options
@click.pass_context
def income_statement(ctx, **kwargs):
    """Show the income statement (defaults to this month)."""
    db = ctx.obj["db"]
    start, end = _period(ctx, kwargs)
    try:
        statement = ReportService(db).income_statement(start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nIncome statement {start} to {end}")
    click.echo(rule(66))
    for title, section in (
        ("Revenue", statement.revenue),
        ("Cost of goods sold", statement.cogs),
        ("Expenses", statement.expenses),
    ):
        click.echo(title)
        for line in section.accounts:
            _echo_line(f"{line.account.code} {line.account.name}", line.amount, indent=4)
        _echo_line(f"Total {title.lower()}", section.total)
    click.echo(rule(66))
    _echo_line(f"Gross profit ({statement.gross_margin}%)", statement.gross_profit, indent=0)
    _echo_line(f"Net income ({statement.net_margin}%)", statement.net_income, indent=0)


@report_group.command("cash-flow")
@period_options
@click.pass_context
def cash_flow(ctx, **kwargs):
    """Show the cash flow statement (defaults to this month)."""
    db = ctx.obj["db"]
    start, end = _period(ctx, kwargs)
    try:
        statement = ReportService(db).cash_flow_statement(start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nCash flow statement {start} to {end}")
    click.echo(rule(66))
    click.echo("Operating activities")
    _echo_line("Net income", statement.net_income, indent=4)
    for item in statement.operating.items:
        _echo_line(item.description, item.amount, indent=4)
    _echo_line("Net cash from operating activities", statement.operating_total)
    for title, section in (
        ("Investing activities", statement.investing),
        ("Financing activities", statement.financing),
    ):
        click.echo(title)
        for item in section.items:
            _echo_line(item.description, item.amount, indent=4)
        _echo_line(f"Net cash from {title.lower()}", section.total)
    click.echo(rule(66))
    _echo_line("Net change in cash", statement.net_cash_flow, indent=0)
    _echo_line("Cash at beginning of period", statement.beginning_cash, indent=0)
    _echo_line("Cash at end of period", statement.ending_cash, indent=0)
    for warning in statement.warnings:
        click.echo(f"WARNING: {warning.message}", err=True)


@report_group.command("tax")
@period_options
@click.pass_context
def tax_report(ctx, **kwargs):
    """Show taxable sales and tax collected (defaults to this month)."""
    db = ctx.obj["db"]
    start, end = _period(ctx, kwargs)
    try:
        report = ReportService(db).tax_report(start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nTax report {start} to {end}")
    click.echo(rule(66))
    _echo_line("Taxable revenue", report.taxable_revenue, indent=0)
    _echo_line("Non-taxable revenue", report.non_taxable_revenue, indent=0)
    _echo_line("Total revenue", report.total_revenue, indent=0)
    _echo_line(f"Tax collected ({report.tax_rate * 100:.2f}%)", report.tax_collected, indent=0)
    if report.transactions:
        click.echo(rule(66))
        for txn in report.transactions:
            click.echo(
                f"#{txn.entry_id:<5d} {txn.date} {format_amount(txn.amount):>14s} "
                f"{format_amount(txn.tax_amount):>12s} {txn.tax_rate * 100:6.2f}%"
            )


@report_group.command("ledger")
@period_options
@click.option("--account", help="Single account (code, name or ID)")
@click.pass_context
def general_ledger(ctx, account: str | None, **kwargs):
    """Show the general ledger with running balances."""
    db = ctx.obj["db"]
    start, end = resolve_cli_date_range(
        ctx,
        start_date=kwargs.pop("start_date"),
        end_date=kwargs.pop("end_date"),
        period_flags=pop_period_flags(kwargs),
    )
    account_id = resolve_account_or_exit(ctx, AccountService(db), account) if account else None
    try:
        views = ReportService(db).general_ledger(account_id, start, end)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    for view in views:
        if not view.lines and view.opening_balance == 0 and account_id is None:
            continue
        click.echo(f"\n{view.account.code} {view.account.name}")
        click.echo(rule())
        click.echo(f"{'Opening balance':<40s} {format_amount(view.opening_balance):>31s}")
        for line in view.lines:
            debit = format_amount(line.debit) if line.debit else ""
            credit = format_amount(line.credit) if line.credit else ""
            click.echo(
                f"{line.date} #{line.entry_id:<5d} {line.description[:20]:20s} "
                f"{debit:>10s} {credit:>10s} {format_amount(line.balance):>12s}"
            )
        click.echo(f"{'Closing balance':<40s} {format_amount(view.closing_balance):>31s}")


@report_group.command("verify")
@click.option("--fix", is_flag=True, help="Rebuild cached balances from the journal")
@click.pass_context
def verify(ctx, fix: bool):
    """Check cached account balances against the journal."""
    db = ctx.obj["db"]
    service = BalanceService(db)
    warnings = service.verify_cached_balances()
    if not warnings:
        click.echo("All cached balances match the journal.")
        return
    for warning in warnings:
        click.echo(f"WARNING: {warning.message}", err=True)
    if fix:
        service.rebuild_cached_balances()
        click.echo(f"Rebuilt cached balances ({len(warnings)} corrected).")
    else:
        ctx.exit(1)


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")
