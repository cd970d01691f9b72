"""
Ingestion-boundary normalization of legacy field values.

The source database stores several fields loosely: budgets as numbers or
strings with a 万 (ten-thousand) suffix, financial months as integers or
``"M3"``-style strings, discounts as strings. These helpers turn each of them
into one canonical Python value exactly once, when a source document is
loaded; nothing downstream re-reads the raw value.

Money in the target schema is an integer count of minor currency units
(fen, 1/100 of a yuan).
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from kolmigrate.models import OrderMode, TargetProjectStatus

MINOR_UNITS_PER_MAJOR = 100
"""Scale between the source's major units and the target's minor units."""

WAN = Decimal(10_000)
"""Multiplier for the 万 budget suffix."""

_BUDGET_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(万)?$")
_MONTH_PATTERN = re.compile(r"^[A-Za-z]?(\d{1,2})$")

PROJECT_STATUS_MAP: dict[str, TargetProjectStatus] = {
    "执行中": TargetProjectStatus.EXECUTING,
    "已完成": TargetProjectStatus.SETTLED,
    "已暂停": TargetProjectStatus.PENDING_SETTLEMENT,
    "已归档": TargetProjectStatus.CLOSED,
}
"""Source status label to target status."""

ORDER_MODE_MAP: dict[str, OrderMode] = {
    "original": OrderMode.ORIGINAL,
    "modified": OrderMode.ADJUSTED,
}
"""Source ``orderType`` to target ``orderMode``."""


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    return result


def to_minor_units(amount: Any) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Uses decimal arithmetic so ``0.1 + 0.2`` style float noise never leaks
    into the stored integer. Rounds half away from zero.

    Args:
        amount: Number or numeric string in major units.

    Returns:
        ``round(amount * 100)``; 0 for missing or non-numeric input.

    Example:
        >>> to_minor_units(1000)
        100000
        >>> to_minor_units("12.345")
        1235
    """
    value = _to_decimal(amount)
    if value is None:
        return 0
    scaled = (value * MINOR_UNITS_PER_MAJOR).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(scaled)


def sum_major_units(amounts: Iterable[Any]) -> Decimal:
    """
    Sum major-unit amounts exactly; missing and non-numeric values count as 0.

    Example:
        >>> sum_major_units([0.1, 0.2, "x"])
        Decimal('0.3')
    """
    total = Decimal(0)
    for amount in amounts:
        value = _to_decimal(amount)
        if value is not None:
            total += value
    return total


def parse_budget(value: Any) -> int:
    """
    Parse a legacy budget into minor units.

    Accepted forms are a plain number, a numeric string, or a numeric string
    with the 万 suffix (×10,000). Anything else yields 0 rather than an error.

    Example:
        >>> parse_budget("5万")
        5000000
        >>> parse_budget("1234.5")
        123450
        >>> parse_budget("about 5k")
        0
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float, Decimal)):
        return to_minor_units(value)

    match = _BUDGET_PATTERN.match(str(value).strip())
    if match is None:
        return 0
    amount = Decimal(match.group(1))
    if match.group(2):
        amount *= WAN
    return to_minor_units(amount)


def parse_financial_year(value: Any) -> int | None:
    """Parse a financial year stored as int or numeric string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_financial_month(value: Any) -> int | None:
    """
    Parse a financial month stored as int, ``"3"`` or ``"M3"``.

    Returns:
        The month number, or None when the value cannot be read.

    Example:
        >>> parse_financial_month("M3")
        3
        >>> parse_financial_month(11)
        11
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = _MONTH_PATTERN.match(str(value).strip())
    if match is None:
        return None
    return int(match.group(1))


def parse_discount(value: Any) -> float | None:
    """
    Parse the legacy discount field.

    Zero and unreadable values are treated as absent.
    """
    number = _to_decimal(value)
    if number is None or number == 0:
        return None
    return float(number)


def map_project_status(label: str | None) -> TargetProjectStatus:
    """Map a source status label, defaulting to executing."""
    if label is None:
        return TargetProjectStatus.EXECUTING
    return PROJECT_STATUS_MAP.get(label, TargetProjectStatus.EXECUTING)


def map_order_mode(order_type: str | None) -> OrderMode:
    """Map a source order type; unknown values are classified as adjusted."""
    if order_type is None:
        return OrderMode.ADJUSTED
    return ORDER_MODE_MAP.get(order_type, OrderMode.ADJUSTED)


__all__ = [
    "MINOR_UNITS_PER_MAJOR",
    "WAN",
    "PROJECT_STATUS_MAP",
    "ORDER_MODE_MAP",
    "to_minor_units",
    "sum_major_units",
    "parse_budget",
    "parse_financial_year",
    "parse_financial_month",
    "parse_discount",
    "map_project_status",
    "map_order_mode",
]
