"""Output formatting helpers for CLI commands."""

from decimal import Decimal


def format_amount(amount: Decimal) -> str:
    """Format an amount with thousands separators; negatives in parentheses."""
    if amount < 0:
        return f"({-amount:,.2f})"
    return f"{amount:,.2f}"


def rule(width: int = 72) -> str:
    return "-" * width
