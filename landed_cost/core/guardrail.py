"""Multiplier plausibility guardrail for customer-facing totals."""

from __future__ import annotations

import logging
from decimal import Decimal

from .models import GuardrailResult
from .money import to_decimal

logger = logging.getLogger(__name__)

# Business constants, intentionally not configurable.
MULTIPLIER_MIN = Decimal("1.7")
MULTIPLIER_MAX = Decimal("2.5")
MULTIPLIER_FALLBACK = Decimal("1.95")
MULTIPLIER_BOUNDS = (MULTIPLIER_MIN, MULTIPLIER_MAX)


def apply_guardrail(final_total: Decimal | float, item_price: Decimal | float | None) -> GuardrailResult:
    """Replace implausible totals with item_price x 1.95.

    A total whose ratio to the item price falls outside [1.7, 2.5] usually
    means a carton or duty estimate went wrong upstream. Without a positive
    item price the total passes through unchecked.
    """
    final_total = to_decimal(final_total) or Decimal("0")
    item_price = to_decimal(item_price)

    if item_price is None or item_price <= 0:
        return GuardrailResult(
            adjusted_total=final_total,
            implied_multiplier=None,
            fallback_used=False,
            bounds=MULTIPLIER_BOUNDS,
        )

    implied = final_total / item_price

    if implied < MULTIPLIER_MIN or implied > MULTIPLIER_MAX:
        adjusted = item_price * MULTIPLIER_FALLBACK
        logger.warning(
            f"Implied multiplier {implied:.2f} outside {MULTIPLIER_MIN}-{MULTIPLIER_MAX}; "
            f"total {final_total} replaced with {adjusted}"
        )
        return GuardrailResult(
            adjusted_total=adjusted,
            implied_multiplier=implied,
            fallback_used=True,
            fallback_multiplier=MULTIPLIER_FALLBACK,
            bounds=MULTIPLIER_BOUNDS,
        )

    return GuardrailResult(
        adjusted_total=final_total,
        implied_multiplier=implied,
        fallback_used=False,
        bounds=MULTIPLIER_BOUNDS,
    )
