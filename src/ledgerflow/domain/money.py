"""Fixed-point money helpers.

Amounts are ``Decimal`` with a scale of two places. Values carrying more
precision are refused rather than rounded.
"""

from decimal import Decimal, InvalidOperation
from typing import Iterable

from ledgerflow.domain.errors import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Convert a value to a two-place Decimal without rounding.

    Args:
        value: Decimal, int or numeric string. Floats are refused.

    Returns:
        Decimal quantized to cents

    Raises:
        ValidationError: If the value is not numeric or has sub-cent precision
    """
    if isinstance(value, float):
        raise ValidationError(f"Refusing binary float amount {value!r}", code="invalid_amount")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"Invalid amount '{value}'", code="invalid_amount")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount '{value}'", code="invalid_amount")
    quantized = amount.quantize(CENT)
    if quantized != amount:
        raise ValidationError(
            f"Amount {amount} has more than two decimal places", code="invalid_amount"
        )
    return quantized


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def format_money(amount: Decimal) -> str:
    return f"{amount:,.2f}"
