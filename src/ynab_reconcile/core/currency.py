"""
Conversion between decimal currency amounts and YNAB milliunits.
All amount conversions go through this module so rounding is decided in one place.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

MILLIUNITS_PER_UNIT = 1000

Amount = Union[Decimal, float, int, str]


def to_milliunits(amount: Amount) -> int:
    """
    Convert a decimal currency amount to milliunits.

    Rounds to the nearest milliunit, halves away from zero.
    Floats go through str() so 45.1 converts as 45.1 and not 45.09999...
    """
    if isinstance(amount, float):
        amount = str(amount)
    value = Decimal(amount) * MILLIUNITS_PER_UNIT
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_milliunits(milliunits: int) -> Decimal:
    """Convert milliunits back to a decimal currency amount"""
    return Decimal(milliunits) / MILLIUNITS_PER_UNIT


def format_milliunits(milliunits: int) -> str:
    """Format milliunits as a dollar string, e.g. -$1,234.50"""
    dollars = from_milliunits(milliunits)
    if dollars < 0:
        return f"-${abs(dollars):,.2f}"
    return f"${dollars:,.2f}"
