"""Brand and category classification for packaging heuristics."""

from __future__ import annotations

import re

from .models import Brand, Category, Classification, ProductDescriptor

# Checked in order; first brand whose token appears in any field wins.
BRAND_TOKENS: list[tuple[Brand, str]] = [
    (Brand.IKEA, "ikea"),
    (Brand.WAYFAIR, "wayfair"),
]

# Checked in order; first match wins, no combination logic.
CATEGORY_PATTERNS: list[tuple[Category, re.Pattern[str]]] = [
    (Category.SECTIONAL, re.compile(r"\bsectionals?\b")),
    (Category.SOFA, re.compile(r"\b(?:sofas?|couch(?:es)?|loveseats?|outdoor seating)\b")),
    (Category.CHAIR, re.compile(r"\b(?:armchairs?|chairs?)\b")),
    (Category.TABLE, re.compile(r"\b(?:dining tables?|tables?)\b")),
    (Category.BED, re.compile(r"\b(?:bed frames?|beds?)\b")),
]


def detect_brand(product: ProductDescriptor | None) -> Brand:
    """Detect the retail brand from brand, name, url and retailer."""
    if product is None:
        return Brand.GENERIC

    haystacks = [
        product.brand.lower(),
        product.name.lower(),
        product.url.lower(),
        product.retailer.lower(),
    ]
    for brand, token in BRAND_TOKENS:
        if any(token in h for h in haystacks):
            return brand
    return Brand.GENERIC


def detect_category(product: ProductDescriptor | None) -> Category:
    """Detect the furniture category from name, category and breadcrumbs."""
    if product is None:
        return Category.DEFAULT

    text = " ".join([product.name, product.category, " ".join(product.breadcrumbs)]).lower()
    for category, pattern in CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return Category.DEFAULT


def classify(product: ProductDescriptor | None) -> Classification:
    """Map free-text product fields to a (brand, category) pair."""
    return Classification(brand=detect_brand(product), category=detect_category(product))
