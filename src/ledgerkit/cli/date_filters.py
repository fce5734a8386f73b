"""CLI helpers for date range resolution."""

from datetime import date

import click

from ledgerkit.utils.date_parser import PERIODS, get_date_range, parse_date


def period_options(command):
    """Add --start-date/--end-date and one flag per named period."""
    for period in reversed(PERIODS):
        command = click.option(
            f"--{period}",
            is_flag=True,
            help=f"Limit to {period.replace('-', ' ')}",
        )(command)
    command = click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")(
        command
    )
    command = click.option(
        "--start-date", help="Start date (YYYY-MM-DD or relative like '30 days ago')"
    )(command)
    return command


def pop_period_flags(kwargs: dict) -> dict[str, bool]:
    """Remove period flags from click kwargs, keyed by period name."""
    return {period: kwargs.pop(period.replace("-", "_"), False) for period in PERIODS}


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from period flags or explicit dates."""
    period_count = sum(1 for is_set in period_flags.values() if is_set)

    if period_count > 1:
        click.echo("Error: Only one period option can be specified at a time.", err=True)
        ctx.exit(1)

    if period_count > 0 and (start_date or end_date):
        click.echo(
            "Error: Period options cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    start = None
    end = None

    if period_count == 1:
        for period, is_set in period_flags.items():
            if is_set:
                start, end = get_date_range(period)
                break
    else:
        if start_date:
            try:
                start = parse_date(start_date)
            except ValueError as e:
                click.echo(f"Error: Invalid start date: {e}", err=True)
                ctx.exit(1)

        if end_date:
            try:
                end = parse_date(end_date)
            except ValueError as e:
                click.echo(f"Error: Invalid end date: {e}", err=True)
                ctx.exit(1)

        if start is None and end is None and default_range is not None:
            start, end = default_range

    return start, end


def parse_date_or_exit(ctx, value: str | None, label: str) -> date | None:
    """Parse an optional date option, exiting with a CLI error when invalid."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)
