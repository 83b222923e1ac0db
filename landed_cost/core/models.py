"""Core data models for the landed cost estimator."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from .money import to_decimal


def _json_value(value: Any) -> Any:
    """Convert a model value to plain JSON types."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _json_value(v) for k, v in value.items()}
    return value


class _Serializable:
    """Mixin giving dataclasses a JSON-safe ``as_dict``."""

    def as_dict(self) -> dict[str, Any]:
        return {f.name: _json_value(getattr(self, f.name)) for f in fields(self)}  # type: ignore[arg-type]


class Brand(str, Enum):
    """Retail brands with their own packaging heuristics."""

    IKEA = "IKEA"
    WAYFAIR = "Wayfair"
    GENERIC = "Generic"

    @classmethod
    def values(cls) -> list[str]:
        """Get list of brand values."""
        return [b.value for b in cls]


class Category(str, Enum):
    """Furniture categories, in classification priority order."""

    SECTIONAL = "sectional"
    SOFA = "sofa"
    CHAIR = "chair"
    TABLE = "table"
    BED = "bed"
    DEFAULT = "default"

    @classmethod
    def values(cls) -> list[str]:
        """Get list of category values."""
        return [c.value for c in cls]


class DutySource(str, Enum):
    """Where a duty percentage came from."""

    HS_CODE = "hs-code"
    VENDOR = "vendor"
    KEYWORD = "keyword"
    DEFAULT = "default"
    DEFAULT_FALLBACK = "default-fallback"


class FeePolicy(str, Enum):
    """Alternative fee formulas. They are not interchangeable."""

    FLAT_FREIGHT = "flat_freight"  # Policy A
    LANDED_COST = "landed_cost"  # Policy B
    RETAIL = "retail"  # Policy C


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Mapping):
        # Scrapers sometimes return {"name": "IKEA"} for brand
        return _text(value.get("name"))
    return str(value).strip()


def _breadcrumbs(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = re.split(r"\s*(?:>|/|\|)\s*", value)
        return tuple(p for p in (s.strip() for s in parts) if p)
    if isinstance(value, (list, tuple)):
        return tuple(t for t in (_text(v) for v in value) if t)
    return ()


@dataclass(frozen=True)
class ProductDescriptor(_Serializable):
    """Scraped product metadata. Every field is optional."""

    name: str = ""
    brand: str = ""
    url: str = ""
    retailer: str = ""
    category: str = ""
    breadcrumbs: tuple[str, ...] = ()
    weight: Decimal | None = None  # lb
    price: Decimal | None = None  # USD
    hs_code: str = ""

    def __post_init__(self) -> None:
        # Frozen, so normalize in place through object.__setattr__
        for name in ("name", "brand", "url", "retailer", "category", "hs_code"):
            object.__setattr__(self, name, _text(getattr(self, name)))
        object.__setattr__(self, "breadcrumbs", _breadcrumbs(self.breadcrumbs))
        object.__setattr__(self, "weight", to_decimal(self.weight))
        object.__setattr__(self, "price", to_decimal(self.price))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ProductDescriptor":
        """Build a descriptor from a scraper record, tolerating missing or bad values."""
        if not data:
            return cls()

        return cls(
            name=_text(data.get("name") or data.get("title")),
            brand=_text(data.get("brand") or data.get("vendor")),
            url=_text(data.get("url")),
            retailer=_text(data.get("retailer")),
            category=_text(data.get("category")),
            breadcrumbs=_breadcrumbs(data.get("breadcrumbs")),
            weight=to_decimal(data.get("weight") if data.get("weight") is not None else data.get("weight_lbs")),
            price=to_decimal(data.get("price")),
            hs_code=_text(data.get("hsCode") or data.get("hs_code")),
        )


@dataclass(frozen=True)
class Classification(_Serializable):
    """Normalized brand/category pair."""

    brand: Brand = Brand.GENERIC
    category: Category = Category.DEFAULT


@dataclass
class Dimensions(_Serializable):
    """Carton dimensions in inches."""

    length: Decimal = Decimal("0")
    width: Decimal = Decimal("0")
    height: Decimal = Decimal("0")

    @property
    def cubic_inches(self) -> Decimal:
        return self.length * self.width * self.height


@dataclass
class CartonEstimate(_Serializable):
    """Estimated shipping carton for a product."""

    cubic_feet: Decimal = Decimal("0")
    boxes: int = 1
    dimensions: Dimensions = field(default_factory=Dimensions)
    notes: str = ""
    source: str = "estimated"
    brand: Brand = Brand.GENERIC
    category: Category = Category.DEFAULT
    density_adjustment: str = ""  # "", "low" or "high"


@dataclass
class BoxList(_Serializable):
    """Cartons parsed from free-text box lines."""

    boxes: list[Dimensions] = field(default_factory=list)
    total_cuft: Decimal = Decimal("0")

    @property
    def count(self) -> int:
        return len(self.boxes)

    def as_dict(self) -> dict[str, Any]:
        data = super().as_dict()
        data["count"] = self.count
        return data


@dataclass
class BillableCuft(_Serializable):
    """Chargeable volume after safety factor and clamps."""

    cuft: Decimal = Decimal("0")
    pre_safety_cuft: Decimal = Decimal("0")
    source: str = "fallback"  # "actual_boxes", "scraped_dims" or "fallback"
    fallback_cuft: Decimal | None = None
    safety_factor: Decimal = Decimal("1.15")


@dataclass(frozen=True)
class TariffRule(_Serializable):
    """One row of the tariff rule table."""

    duty_pct: Decimal
    hs: tuple[str, ...] = ()
    vendors_any: tuple[str, ...] = ()
    keywords_any: tuple[str, ...] = ()
    note: str = ""


@dataclass(frozen=True)
class TariffRuleTable(_Serializable):
    """Ordered, read-only set of tariff rules."""

    default_duty_pct: Decimal
    rules: tuple[TariffRule, ...] = ()
    version: str = ""
    load_failed: bool = False


@dataclass
class DutyDecision(_Serializable):
    """Chosen duty percentage and its provenance."""

    duty_pct: Decimal = Decimal("0")
    source: DutySource = DutySource.DEFAULT
    note: str = ""


@dataclass
class FreightQuote(_Serializable):
    """Ocean freight before any markup."""

    freight: Decimal = Decimal("0")
    mode: str = "cubic_feet"  # or "percent_of_price"


@dataclass
class FeeBreakdown(_Serializable):
    """Fees composed by Policy A or Policy B."""

    policy: FeePolicy = FeePolicy.FLAT_FREIGHT
    freight: Decimal = Decimal("0")
    customs: Decimal = Decimal("0")
    handling: Decimal = Decimal("0")
    margin: Decimal = Decimal("0")
    card_fee: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    total_with_margin: Decimal = Decimal("0")


@dataclass
class RetailBreakdown(_Serializable):
    """Tax-inclusive retail price composed by Policy C."""

    item: Decimal = Decimal("0")
    cif_base: Decimal = Decimal("0")
    duty_wharfage: Decimal = Decimal("0")
    freight: Decimal = Decimal("0")
    card_fee: Decimal = Decimal("0")
    margin: Decimal = Decimal("0")
    shipping_handling: Decimal = Decimal("0")
    retail_before_tax: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    final_retail: Decimal = Decimal("0")


@dataclass
class GuardrailResult(_Serializable):
    """Outcome of the multiplier plausibility check."""

    adjusted_total: Decimal = Decimal("0")
    implied_multiplier: Decimal | None = None
    fallback_used: bool = False
    fallback_multiplier: Decimal | None = None
    bounds: tuple[Decimal, Decimal] = (Decimal("1.7"), Decimal("2.5"))


@dataclass
class Quote(_Serializable):
    """Complete cost estimate for one product."""

    product: ProductDescriptor = field(default_factory=ProductDescriptor)
    policy: FeePolicy = FeePolicy.RETAIL
    classification: Classification = field(default_factory=Classification)
    carton: CartonEstimate = field(default_factory=CartonEstimate)
    duty: DutyDecision = field(default_factory=DutyDecision)
    fees: FeeBreakdown | None = None
    retail: RetailBreakdown | None = None
    guardrail: GuardrailResult = field(default_factory=GuardrailResult)

    @property
    def final_total(self) -> Decimal:
        """Customer-facing total after the guardrail."""
        return self.guardrail.adjusted_total

    def as_dict(self) -> dict[str, Any]:
        data = super().as_dict()
        data["final_total"] = _json_value(self.final_total)
        return data
