"""
Decimal helpers for monetary values.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """
    Round an amount to cents, half up.

    Args:
        amount: Amount to round

    Returns:
        Amount with two decimal places

    Example:
        >>> round_money(Decimal("76.8"))
        Decimal("76.80")
    """
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a numeric value to Decimal without float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
