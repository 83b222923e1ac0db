"""Decimal helpers for monetary and dimensional values."""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENTS = Decimal("0.01")
WHOLE = Decimal("1")

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


def to_decimal(value: Any) -> Decimal | None:
    """Coerce a scraped value to Decimal, or None when it is not a finite number.

    Accepts numbers and strings such as ``"$1,299.00"`` or ``"45 lbs"``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, str):
        cleaned = value.replace(",", "").strip()
        match = _NUMBER_RE.search(cleaned)
        if not match:
            return None
        try:
            result = Decimal(match.group(0))
        except InvalidOperation:
            return None
    else:
        return None

    if not result.is_finite():
        return None
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_inches(value: Decimal) -> Decimal:
    """Round a dimension to whole inches, half away from zero."""
    return value.quantize(WHOLE, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))
