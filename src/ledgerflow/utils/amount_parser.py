"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "-$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)
    - "123.45-" (trailing minus)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount with at most two decimal places

    Raises:
        ValueError: If amount string cannot be parsed or carries sub-cent precision
    """
    if amount_str is None or not amount_str.strip():
        raise ValueError("Empty amount string")

    original = amount_str
    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]
    elif amount_str.endswith("-"):
        is_negative = True
        amount_str = amount_str[:-1]

    amount_str = re.sub(r"[$€£¥\s]", "", amount_str)
    amount_str = amount_str.replace(",", "")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{original.strip()}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{original.strip()}'")

    quantized = amount.quantize(Decimal("0.01"))
    if quantized != amount:
        raise ValueError(f"Amount '{original.strip()}' has more than two decimal places")
    return -quantized if is_negative else quantized
