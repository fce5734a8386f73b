"""Amount parsing and rounding utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

_CENT = Decimal("0.01")


def to_amount(value: Decimal | int | str | float) -> Decimal:
    """Convert a value to a currency amount rounded to two places.

    Floats go through ``str`` first so 0.1 stays 0.10 rather than its
    binary expansion.

    Raises:
        ValueError: If value is not a finite number
    """
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid amount {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Invalid amount {value!r}")
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a rounded Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount with two decimal places

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()

    is_negative = text.startswith("(") and text.endswith(")")
    if is_negative:
        text = text[1:-1]

    text = re.sub(r"[$€£¥﷼]", "", text).replace(",", "").strip()

    try:
        amount = to_amount(text)
    except ValueError:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount
