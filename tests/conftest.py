"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import pytest

from landed_cost.core.config import Settings, get_default_tariff_path
from landed_cost.core.duty import load_tariff_table, reset_tariff_table
from landed_cost.core.models import ProductDescriptor, TariffRuleTable


@pytest.fixture(autouse=True)
def fresh_tariff_table():
    """Make every test start without a cached tariff table."""
    reset_tariff_table()
    yield
    reset_tariff_table()


@pytest.fixture
def settings() -> Settings:
    """Create default settings for testing."""
    return Settings()


@pytest.fixture
def tariff_table() -> TariffRuleTable:
    """The packaged tariff rule table."""
    return load_tariff_table(get_default_tariff_path())


@pytest.fixture
def ikea_sectional() -> ProductDescriptor:
    """An IKEA sectional without weight data."""
    return ProductDescriptor(
        name="FRIHETEN Corner sectional sofa",
        brand="IKEA",
        url="https://www.ikea.com/us/en/p/friheten-corner-sofa-bed-s59216757/",
        retailer="IKEA",
        category="Sofas",
        breadcrumbs=("Products", "Sofas & armchairs", "Sectionals"),
        price=Decimal("1000"),
    )


@pytest.fixture
def wayfair_sofa() -> ProductDescriptor:
    """A Wayfair sofa."""
    return ProductDescriptor(
        name='Swain 89.5" Sofa',
        brand="Wayfair",
        url="https://www.wayfair.com/furniture/pdp/swain-sofa.html",
        retailer="Wayfair",
        category="sofa",
        breadcrumbs=("Furniture", "Living Room", "Sofas & Couches"),
        price=Decimal("799.99"),
    )


@pytest.fixture
def generic_chair() -> ProductDescriptor:
    """A chair from a retailer without its own packaging profile."""
    return ProductDescriptor(
        name="Mid-Century Accent Chair",
        retailer="Target",
        url="https://www.target.com/p/accent-chair",
        price=Decimal("249.00"),
    )


@pytest.fixture
def tariff_file(tmp_path: Path) -> Path:
    """A small tariff rule file on disk."""
    data = {
        "_meta": {"version": "test-1", "defaultDutyPct": 22},
        "rules": [
            {"match": {"hs": ["9401"]}, "dutyPct": 25, "note": "Seating"},
            {"match": {"vendorsAny": ["crate"]}, "dutyPct": 15, "note": "Crate vendor"},
            {"match": {"keywordsAny": ["lamp", "light"]}, "dutyPct": 10, "note": "Lighting"},
        ],
    }
    path = tmp_path / "duty_map.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path
