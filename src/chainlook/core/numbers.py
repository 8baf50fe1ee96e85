"""Numeric coercion shared by transforms, aggregation and expressions.

Subgraphs return BigInt/BigDecimal values as strings, so every numeric
consumer accepts numeric strings as well as real numbers.
"""

from decimal import Decimal, InvalidOperation
from typing import Any


def coerce_number(value: Any) -> int | float | None:
    """Best-effort conversion of ``value`` to int or float.

    Returns:
        int for integral input (including integral strings), float for other
        numeric input, None when the value is not numeric. Booleans are not
        numbers here.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return value
    if isinstance(value, Decimal):
        if not value.is_finite():
            return None
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = Decimal(text)
        except InvalidOperation:
            return None
        if not number.is_finite():
            return None
        return float(number)
    return None
