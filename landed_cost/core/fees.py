"""Fee composition policies for the landed cost estimator.

Three historical formulas coexist and are deliberately kept apart:

* Policy A (flat freight): freight + customs + handling, rounded up to the
  next $5, then margin on that subtotal.
* Policy B (landed cost): ocean freight with a floor, margin on the total
  landed cost, card fee applied after margin on the full pre-card subtotal.
* Policy C (retail): duty and wharfage on the CIF value, card fee, margin on
  everything so far, then optional sales tax.

Callers depend on each policy's own ordering and rounding, so they compute
margin on different bases and cannot be reconciled into one formula. Every
monetary step is rounded to cents before it feeds the next step.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, Decimal
from typing import TYPE_CHECKING

from .models import FeeBreakdown, FeePolicy, FreightQuote, RetailBreakdown
from .money import round_money

if TYPE_CHECKING:
    from .config import Settings

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MIN_HEALTHY_MARGIN_PCT = Decimal("10")


def ceil_to_next_5(price: Decimal | None) -> Decimal:
    """Round up to the next multiple of $5 (0 for non-positive input)."""
    return ceil_to_multiple(price, Decimal("5"))


def ceil_to_multiple(price: Decimal | None, step: Decimal) -> Decimal:
    """Round up to the next multiple of step (0 for non-positive input)."""
    if price is None or price <= 0:
        return ZERO
    return (price / step).to_integral_value(rounding=ROUND_CEILING) * step


def compare_at_price(retail: Decimal | None, percent_higher: Decimal = Decimal("15")) -> Decimal | None:
    """Higher "compare at" display price, rounded up to the next $5."""
    if retail is None or retail <= 0:
        return None
    return ceil_to_next_5(retail * (1 + percent_higher / HUNDRED))


def validate_pricing(landed: Decimal | None, retail: Decimal | None) -> list[str]:
    """Return human-readable problems with a landed/retail price pair."""
    errors: list[str] = []

    if landed is None or landed <= 0:
        errors.append("Landed cost must be positive")

    if retail is None or retail <= 0:
        errors.append("Retail price must be positive")

    if landed and retail and retail < landed:
        errors.append("Retail price must be greater than landed cost")

    margin_pct = ((retail - landed) / landed) * HUNDRED if landed and retail and landed > 0 else ZERO
    if margin_pct < MIN_HEALTHY_MARGIN_PCT:
        errors.append(f"Margin too low: {margin_pct:.1f}% (minimum {MIN_HEALTHY_MARGIN_PCT}% recommended)")

    return errors


def compute_ocean_freight(
    cubic_feet: Decimal | None,
    settings: Settings,
    price: Decimal | None = None,
) -> FreightQuote:
    """Pre-markup ocean freight.

    Charged per cubic foot when a volume is known, otherwise as a share of the
    item price; both are subject to the minimum freight charge.
    """
    config = settings.retail
    cuft = cubic_feet if cubic_feet is not None else ZERO

    if cuft > 0:
        freight = max(config.min_freight, cuft * settings.freight_rate_per_cuft)
        mode = "cubic_feet"
    else:
        item = price if price is not None and price > 0 else ZERO
        freight = max(config.min_freight, item * config.freight_pct_of_price)
        mode = "percent_of_price"

    return FreightQuote(freight=round_money(freight), mode=mode)


def compute_flat_freight_fees(
    cubic_feet: Decimal,
    settings: Settings,
    vendors: int = 1,
) -> FeeBreakdown:
    """Policy A: flat per-cuft freight, customs and handling, margin on a $5-rounded subtotal."""
    margin_rate = settings.get_effective_margin_rate(FeePolicy.FLAT_FREIGHT)

    freight = round_money(max(ZERO, cubic_feet) * settings.freight_rate_per_cuft)
    customs = round_money(max(1, vendors) * settings.customs_clear_fee_per_vendor)
    handling = round_money(settings.default_handling_fee)

    subtotal = round_money(ceil_to_multiple(freight + customs + handling, settings.flat_freight.round_to))
    total_with_margin = round_money(subtotal * (1 + margin_rate))

    return FeeBreakdown(
        policy=FeePolicy.FLAT_FREIGHT,
        freight=freight,
        customs=customs,
        handling=handling,
        margin=total_with_margin - subtotal,
        card_fee=ZERO,
        subtotal=subtotal,
        total_with_margin=total_with_margin,
    )


def compute_landed_cost_fees(
    cubic_feet: Decimal,
    landed: Decimal,
    settings: Settings,
    vendors: int = 1,
) -> FeeBreakdown:
    """Policy B: shipping and handling with margin on the total landed cost.

    The card fee is charged after margin on landed + margin + ocean + customs;
    that pre-card amount is reported as the subtotal.
    """
    margin_rate = settings.get_effective_margin_rate(FeePolicy.LANDED_COST)
    card_fee_rate = settings.get_effective_card_fee_rate(FeePolicy.LANDED_COST)

    cuft = max(ZERO, cubic_feet)
    landed_base = max(ZERO, landed)

    ocean = round_money(max(settings.landed.min_ocean_freight, cuft * settings.freight_rate_per_cuft))
    customs = round_money(max(1, vendors) * settings.customs_clear_fee_per_vendor)
    margin = round_money(landed_base * margin_rate)
    pre_card = round_money(landed_base + margin + ocean + customs)
    card_fee = round_money(pre_card * card_fee_rate)
    total = round_money(ocean + customs + margin + card_fee)

    return FeeBreakdown(
        policy=FeePolicy.LANDED_COST,
        freight=ocean,
        customs=customs,
        handling=ZERO,
        margin=margin,
        card_fee=card_fee,
        subtotal=pre_card,
        total_with_margin=total,
    )


def compute_retail_price(
    item: Decimal,
    freight: Decimal,
    duty_pct: Decimal,
    settings: Settings,
    us_delivery: Decimal = ZERO,
    wharfage_pct: Decimal | None = None,
) -> RetailBreakdown:
    """Policy C: duty and wharfage on CIF, then card fee, margin and sales tax.

    ``freight`` must be the pre-markup freight; card fee and margin are never
    part of the customs value.
    """
    if wharfage_pct is None:
        wharfage_pct = settings.retail.wharfage_pct
    card_fee_rate = settings.get_effective_card_fee_rate(FeePolicy.RETAIL)
    margin_rate = settings.get_effective_margin_rate(FeePolicy.RETAIL)

    item = round_money(max(ZERO, item))
    freight = round_money(max(ZERO, freight))
    us_delivery = round_money(max(ZERO, us_delivery))

    cif_base = round_money(item + us_delivery + freight)
    duty_wharfage = round_money(cif_base * (duty_pct + wharfage_pct) / HUNDRED)

    card_fee = round_money((item + duty_wharfage + freight) * card_fee_rate)
    margin = round_money((item + duty_wharfage + freight + card_fee) * margin_rate)
    shipping_handling = round_money(freight + card_fee + margin)
    retail_before_tax = round_money(item + duty_wharfage + shipping_handling)

    tax = ZERO
    if settings.apply_nj_tax:
        tax = round_money(retail_before_tax * settings.nj_tax_rate_pct / HUNDRED)

    return RetailBreakdown(
        item=item,
        cif_base=cif_base,
        duty_wharfage=duty_wharfage,
        freight=freight,
        card_fee=card_fee,
        margin=margin,
        shipping_handling=shipping_handling,
        retail_before_tax=retail_before_tax,
        tax=tax,
        final_retail=round_money(retail_before_tax + tax),
    )
