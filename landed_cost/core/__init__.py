"""Core business logic for the landed cost estimator."""

from .carton import estimate_carton, parse_boxes_text, resolve_billable_cuft
from .classifier import classify
from .config import Settings, get_settings
from .duty import TariffTableError, estimate_duty, get_tariff_table, load_tariff_table
from .fees import (
    compute_flat_freight_fees,
    compute_landed_cost_fees,
    compute_ocean_freight,
    compute_retail_price,
)
from .guardrail import apply_guardrail
from .models import (
    Brand,
    CartonEstimate,
    Category,
    Classification,
    DutyDecision,
    DutySource,
    FeeBreakdown,
    FeePolicy,
    GuardrailResult,
    ProductDescriptor,
    Quote,
    RetailBreakdown,
)
from .quote import QuoteEngine, quote_product, quote_products

__all__ = [
    "Settings",
    "get_settings",
    "Brand",
    "Category",
    "Classification",
    "ProductDescriptor",
    "CartonEstimate",
    "DutyDecision",
    "DutySource",
    "FeeBreakdown",
    "FeePolicy",
    "RetailBreakdown",
    "GuardrailResult",
    "Quote",
    "classify",
    "estimate_carton",
    "parse_boxes_text",
    "resolve_billable_cuft",
    "TariffTableError",
    "estimate_duty",
    "get_tariff_table",
    "load_tariff_table",
    "compute_flat_freight_fees",
    "compute_landed_cost_fees",
    "compute_ocean_freight",
    "compute_retail_price",
    "apply_guardrail",
    "QuoteEngine",
    "quote_product",
    "quote_products",
]
