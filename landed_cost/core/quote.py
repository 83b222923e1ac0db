"""End-to-end quote pipeline: product record in, accepted total out."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Mapping

from .carton import estimate_carton
from .classifier import classify
from .config import Settings, get_settings
from .duty import estimate_duty, get_tariff_table
from .fees import (
    compute_flat_freight_fees,
    compute_landed_cost_fees,
    compute_ocean_freight,
    compute_retail_price,
)
from .guardrail import apply_guardrail
from .models import FeePolicy, ProductDescriptor, Quote, TariffRuleTable
from .money import round_money, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _as_product(product: ProductDescriptor | Mapping[str, Any] | None) -> ProductDescriptor | None:
    if product is None or isinstance(product, ProductDescriptor):
        return product
    if isinstance(product, Mapping):
        return ProductDescriptor.from_dict(product)
    logger.warning(f"Unsupported product record type {type(product).__name__}; using defaults")
    return None


class QuoteEngine:
    """Chains classification, carton, duty, fees and guardrail for products."""

    def __init__(self, settings: Settings | None = None, table: TariffRuleTable | None = None) -> None:
        """Initialize with settings and an optional fixed tariff table."""
        self.settings = settings or get_settings()
        self._table = table

    @property
    def table(self) -> TariffRuleTable:
        if self._table is None:
            return get_tariff_table(self.settings)
        return self._table

    def quote(
        self,
        product: ProductDescriptor | Mapping[str, Any] | None,
        policy: FeePolicy = FeePolicy.RETAIL,
        vendors: int = 1,
        us_delivery: Decimal | float = ZERO,
    ) -> Quote:
        """Quote one product under the given fee policy."""
        descriptor = _as_product(product)
        classification = classify(descriptor)
        carton = estimate_carton(descriptor)

        info = descriptor or ProductDescriptor()
        duty = estimate_duty(
            category=info.category or classification.category.value,
            title=info.name,
            brand=info.brand,
            vendor=info.retailer or info.brand,
            hs_code=info.hs_code,
            table=self.table,
        )

        item_price = info.price if info.price is not None and info.price > 0 else None
        item = item_price or ZERO

        result = Quote(
            product=info,
            policy=policy,
            classification=classification,
            carton=carton,
            duty=duty,
        )

        if policy == FeePolicy.FLAT_FREIGHT:
            result.fees = compute_flat_freight_fees(carton.cubic_feet, self.settings, vendors=vendors)
            final_total = round_money(item + result.fees.total_with_margin)
        elif policy == FeePolicy.LANDED_COST:
            result.fees = compute_landed_cost_fees(carton.cubic_feet, item, self.settings, vendors=vendors)
            final_total = round_money(item + result.fees.total_with_margin)
        else:
            freight = compute_ocean_freight(carton.cubic_feet, self.settings, price=item_price)
            # The resolved rate already includes wharfage
            result.retail = compute_retail_price(
                item=item,
                freight=freight.freight,
                duty_pct=duty.duty_pct,
                settings=self.settings,
                us_delivery=to_decimal(us_delivery) or ZERO,
                wharfage_pct=ZERO,
            )
            final_total = result.retail.final_retail

        result.guardrail = apply_guardrail(final_total, item_price)
        return result

    def quote_many(
        self,
        products: Iterable[ProductDescriptor | Mapping[str, Any] | None],
        policy: FeePolicy = FeePolicy.RETAIL,
    ) -> list[Quote]:
        """Quote several products under the same policy."""
        return [self.quote(p, policy=policy) for p in products]


def quote_product(
    product: ProductDescriptor | Mapping[str, Any] | None,
    policy: FeePolicy = FeePolicy.RETAIL,
    vendors: int = 1,
    us_delivery: Decimal | float = ZERO,
    settings: Settings | None = None,
    table: TariffRuleTable | None = None,
) -> Quote:
    """Quote one product with the global settings unless others are given."""
    return QuoteEngine(settings, table).quote(product, policy=policy, vendors=vendors, us_delivery=us_delivery)


def quote_products(
    products: Iterable[ProductDescriptor | Mapping[str, Any] | None],
    policy: FeePolicy = FeePolicy.RETAIL,
    settings: Settings | None = None,
    table: TariffRuleTable | None = None,
) -> list[Quote]:
    """Quote several products."""
    return QuoteEngine(settings, table).quote_many(products, policy=policy)
