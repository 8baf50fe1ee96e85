# src/chainlook/plugins/transforms/builtin.py
"""Built-in per-field transforms.

A transform takes one field value and returns the new value. Values a
numeric transform cannot interpret become None; string transforms leave
non-strings unchanged.
"""

from datetime import UTC, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from chainlook.core.numbers import coerce_number

WEI_PER_ETHER = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9


def _decimal(value: Any) -> Decimal | None:
    """Exact decimal for token amounts, which overflow float precision."""
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def to_number(value: Any) -> int | float | None:
    return coerce_number(value)


def to_integer(value: Any) -> int | None:
    number = coerce_number(value)
    return int(number) if number is not None else None


def wei_to_ether(value: Any) -> float | None:
    amount = _decimal(value)
    return float(amount / WEI_PER_ETHER) if amount is not None else None


def gwei_to_ether(value: Any) -> float | None:
    amount = _decimal(value)
    return float(amount / WEI_PER_GWEI) if amount is not None else None


def to_percent(value: Any) -> float | None:
    """Ratio to percentage: 0.125 -> 12.5."""
    number = coerce_number(value)
    return number * 100 if number is not None else None


def _timestamp(value: Any) -> datetime | None:
    """Unix timestamp in seconds (numeric or numeric string) as UTC datetime."""
    number = coerce_number(value)
    if number is None:
        return None
    try:
        return datetime.fromtimestamp(number, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def timestamp_to_date(value: Any) -> str | None:
    moment = _timestamp(value)
    return moment.date().isoformat() if moment is not None else None


def timestamp_to_datetime(value: Any) -> str | None:
    moment = _timestamp(value)
    return moment.isoformat() if moment is not None else None


def to_lowercase(value: Any) -> Any:
    return value.lower() if isinstance(value, str) else value


def to_uppercase(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


def round_two(value: Any) -> int | float | None:
    """Round to two decimal places; integers pass through."""
    number = coerce_number(value)
    if number is None or isinstance(number, int):
        return number
    return round(number, 2)


def short_address(value: Any) -> Any:
    """0x1234567890abcdef... -> 0x1234...cdef"""
    if not isinstance(value, str) or len(value) <= 12:
        return value
    return f"{value[:6]}...{value[-4:]}"


BUILTIN_TRANSFORMS = {
    "number": to_number,
    "integer": to_integer,
    "weiToEther": wei_to_ether,
    "gweiToEther": gwei_to_ether,
    "percent": to_percent,
    "timestampToDate": timestamp_to_date,
    "timestampToDateTime": timestamp_to_datetime,
    "lowercase": to_lowercase,
    "uppercase": to_uppercase,
    "round": round_two,
    "shortAddress": short_address,
}
