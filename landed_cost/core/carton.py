"""Carton and billable volume estimation for the landed cost estimator."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from .classifier import classify
from .models import (
    BillableCuft,
    BoxList,
    Brand,
    CartonEstimate,
    Category,
    Dimensions,
    ProductDescriptor,
)
from .money import round_inches, round_money

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

CUBIC_INCHES_PER_FOOT = Decimal("1728")

LOW_DENSITY_LB_PER_CUFT = Decimal("1")
HIGH_DENSITY_LB_PER_CUFT = Decimal("60")
LOW_DENSITY_SCALE = Decimal("1.10")
HIGH_DENSITY_SCALE = Decimal("1.15")

DEFAULT_ESTIMATE_CUFT = Decimal("6.9")
DEFAULT_ESTIMATE_DIMS = (Decimal("34"), Decimal("22"), Decimal("16"))

_BOX_LINE_RE = re.compile(r"(\d+(?:\.\d+)?)\s*x\s*(\d+(?:\.\d+)?)\s*x\s*(\d+(?:\.\d+)?)", re.IGNORECASE)


@dataclass(frozen=True)
class BoxTemplate:
    """Typical packaging for a brand/category pair."""

    boxes: int
    length: int
    width: int
    height: int

    def dimensions(self) -> Dimensions:
        return Dimensions(
            length=Decimal(self.length),
            width=Decimal(self.width),
            height=Decimal(self.height),
        )


# IKEA ships flat-packed and often splits large pieces over two boxes;
# Wayfair and generic retailers ship assembled or semi-assembled in one box.
BOX_TEMPLATES: dict[Brand, dict[Category, BoxTemplate]] = {
    Brand.IKEA: {
        Category.SECTIONAL: BoxTemplate(2, 46, 27, 12),
        Category.SOFA: BoxTemplate(2, 46, 27, 12),
        Category.CHAIR: BoxTemplate(1, 24, 24, 16),
        Category.TABLE: BoxTemplate(2, 58, 32, 5),
        Category.BED: BoxTemplate(2, 80, 10, 8),
        Category.DEFAULT: BoxTemplate(1, 30, 20, 10),
    },
    Brand.WAYFAIR: {
        Category.SECTIONAL: BoxTemplate(1, 78, 32, 24),
        Category.SOFA: BoxTemplate(1, 72, 32, 20),
        Category.CHAIR: BoxTemplate(1, 32, 28, 24),
        Category.TABLE: BoxTemplate(1, 65, 38, 8),
        Category.BED: BoxTemplate(1, 82, 12, 10),
        Category.DEFAULT: BoxTemplate(1, 36, 24, 18),
    },
    Brand.GENERIC: {
        Category.SECTIONAL: BoxTemplate(1, 76, 32, 24),
        Category.SOFA: BoxTemplate(1, 70, 32, 20),
        Category.CHAIR: BoxTemplate(1, 30, 26, 22),
        Category.TABLE: BoxTemplate(1, 60, 36, 8),
        Category.BED: BoxTemplate(1, 80, 12, 10),
        Category.DEFAULT: BoxTemplate(1, 34, 22, 16),
    },
}


def dims_to_cuft(length: Decimal, width: Decimal, height: Decimal) -> Decimal:
    """Convert inch dimensions to cubic feet (unrounded)."""
    return (max(Decimal("0"), length) * max(Decimal("0"), width) * max(Decimal("0"), height)) / CUBIC_INCHES_PER_FOOT


def _total_cuft(dims: Dimensions, boxes: int) -> Decimal:
    return dims.cubic_inches * boxes / CUBIC_INCHES_PER_FOOT


def _scale_largest(dims: Dimensions, factor: Decimal) -> Dimensions:
    """Scale only the largest dimension (ties: length, width, height)."""
    largest = max(dims.length, dims.width, dims.height)
    if largest == dims.length:
        return Dimensions(round_inches(dims.length * factor), dims.width, dims.height)
    if largest == dims.width:
        return Dimensions(dims.length, round_inches(dims.width * factor), dims.height)
    return Dimensions(dims.length, dims.width, round_inches(dims.height * factor))


def default_carton() -> CartonEstimate:
    """Generic estimate used when there is no product data at all."""
    length, width, height = DEFAULT_ESTIMATE_DIMS
    return CartonEstimate(
        cubic_feet=DEFAULT_ESTIMATE_CUFT,
        boxes=1,
        dimensions=Dimensions(length, width, height),
        notes="No product data; used generic default",
    )


def estimate_carton(product: ProductDescriptor | None) -> CartonEstimate:
    """Estimate packaging dimensions, box count and cubic feet for a product.

    The category template is corrected by weight when the implied density is
    implausible: below 1 lb/ft³ all dimensions grow 10%, above 60 lb/ft³ the
    largest dimension grows 15%. The notes field records every branch taken.
    """
    if product is None:
        return default_carton()

    classification = classify(product)
    template = BOX_TEMPLATES[classification.brand][classification.category]
    boxes = template.boxes
    dims = template.dimensions()

    notes = f"Brand: {classification.brand.value}, Category: {classification.category.value}"
    cubic_feet = _total_cuft(dims, boxes)

    if boxes > 1:
        notes += f"; Multi-box ({boxes}x)"

    density_adjustment = ""
    weight = product.weight
    if weight is not None and weight > 0 and cubic_feet > 0:
        density = weight / cubic_feet

        if density < LOW_DENSITY_LB_PER_CUFT:
            dims = Dimensions(
                round_inches(dims.length * LOW_DENSITY_SCALE),
                round_inches(dims.width * LOW_DENSITY_SCALE),
                round_inches(dims.height * LOW_DENSITY_SCALE),
            )
            cubic_feet = _total_cuft(dims, boxes)
            density_adjustment = "low"
            notes += f"; Adjusted for low density ({density:.2f} lb/ft³)"
        elif density > HIGH_DENSITY_LB_PER_CUFT:
            dims = _scale_largest(dims, HIGH_DENSITY_SCALE)
            cubic_feet = _total_cuft(dims, boxes)
            density_adjustment = "high"
            notes += f"; Adjusted for high density ({density:.2f} lb/ft³)"

    if density_adjustment:
        logger.debug(f"Carton density correction ({density_adjustment}) for '{product.name}'")

    return CartonEstimate(
        cubic_feet=round_money(cubic_feet),
        boxes=boxes,
        dimensions=dims,
        notes=notes,
        brand=classification.brand,
        category=classification.category,
        density_adjustment=density_adjustment,
    )


def _parse_box_lines(boxes_text: str | None) -> list[Dimensions]:
    if not boxes_text or not isinstance(boxes_text, str):
        return []

    boxes: list[Dimensions] = []
    for line in boxes_text.splitlines():
        match = _BOX_LINE_RE.search(line.strip())
        if match:
            h, w, d = (Decimal(g) for g in match.groups())
            boxes.append(Dimensions(length=d, width=w, height=h))
    return boxes


def parse_boxes_text(boxes_text: str | None) -> BoxList | None:
    """Parse one ``H x W x D`` carton per line; None when nothing parses."""
    boxes = _parse_box_lines(boxes_text)
    if not boxes:
        return None

    total = sum((dims_to_cuft(b.length, b.width, b.height) for b in boxes), Decimal("0"))
    return BoxList(boxes=boxes, total_cuft=round_money(total))


def resolve_billable_cuft(
    settings: Settings,
    category: str | None = None,
    scraped_dims: Dimensions | None = None,
    boxes_text: str | None = None,
) -> BillableCuft:
    """Resolve the volume freight is charged on.

    Sources in priority order: actual box lines, scraped product dimensions,
    then the per-category fallback volume. The result is floored at the
    minimum charge, multiplied by the safety factor and capped.
    """
    config = settings.carton
    pre_safety = Decimal("0")
    source = "fallback"
    fallback_cuft: Decimal | None = None

    boxes = _parse_box_lines(boxes_text)
    if boxes:
        pre_safety = sum((dims_to_cuft(b.length, b.width, b.height) for b in boxes), Decimal("0"))
        source = "actual_boxes"

    if pre_safety == 0 and scraped_dims is not None and scraped_dims.cubic_inches > 0:
        pre_safety = dims_to_cuft(scraped_dims.length, scraped_dims.width, scraped_dims.height)
        source = "scraped_dims"

    if pre_safety == 0:
        key = (category or "other").lower()
        fallback_cuft = config.fallback_cuft.get(key, config.fallback_cuft["other"])
        pre_safety = fallback_cuft
        source = "fallback"

    pre_safety = max(pre_safety, config.min_charge_cuft)
    cuft = min(pre_safety * config.safety_factor, config.max_cuft)

    return BillableCuft(
        cuft=round_money(cuft),
        pre_safety_cuft=round_money(pre_safety),
        source=source,
        fallback_cuft=fallback_cuft,
        safety_factor=config.safety_factor,
    )
