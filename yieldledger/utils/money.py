"""
Money helpers.

All amounts are Decimal KZ with two decimal places.
"""

from decimal import ROUND_DOWN, Decimal


CENT = Decimal("0.01")
UNIT = Decimal("1")


def to_money(value: object) -> Decimal:
    """
    Coerce a driver value (Decimal, int, float, str) to a 2-place Decimal.

    Floats go through ``str`` so binary noise is not carried over.
    """
    if value is None:
        return Decimal("0.00")
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT)


def floor_units(value: Decimal) -> Decimal:
    """Truncate toward zero to whole KZ."""
    return value.quantize(UNIT, rounding=ROUND_DOWN)


def format_kz(value: Decimal) -> str:
    """Human-readable amount used in descriptions."""
    return f"{to_money(value):,.2f} KZ"
