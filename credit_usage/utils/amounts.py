"""Decimal coercion for monetary values arriving from loosely typed feeds"""

from decimal import Decimal, InvalidOperation


def to_decimal(value: object) -> Decimal | None:
    """
    Convert a numeric-looking value to a finite Decimal.

    Floats go through str() so 0.1 stays 0.1 rather than its binary expansion.
    Returns None for None, booleans, NaN/Infinity and unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return None
    else:
        return None

    if not amount.is_finite():
        return None
    return amount
