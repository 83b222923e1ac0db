"""Tests for the end-to-end quote pipeline."""

import json
from decimal import Decimal

import pytest

from landed_cost.core.config import Settings
from landed_cost.core.duty import fallback_table
from landed_cost.core.models import (
    Brand,
    Category,
    DutySource,
    FeePolicy,
    ProductDescriptor,
    TariffRuleTable,
)
from landed_cost.core.quote import QuoteEngine, quote_product, quote_products


@pytest.fixture
def engine(settings: Settings, tariff_table: TariffRuleTable) -> QuoteEngine:
    return QuoteEngine(settings, tariff_table)


class TestRetailQuote:
    """Tests for the default (Policy C) pipeline."""

    def test_ikea_sectional(self, engine: QuoteEngine, ikea_sectional: ProductDescriptor) -> None:
        quote = engine.quote(ikea_sectional)

        assert quote.classification.brand == Brand.IKEA
        assert quote.classification.category == Category.SECTIONAL
        assert quote.carton.cubic_feet == Decimal("17.25")
        assert quote.duty.duty_pct == Decimal("26.5")
        assert quote.duty.source == DutySource.KEYWORD
        assert quote.fees is None

        retail = quote.retail
        assert retail is not None
        assert retail.freight == Decimal("146.63")
        assert retail.duty_wharfage == Decimal("303.86")
        assert retail.card_fee == Decimal("50.77")
        assert retail.margin == Decimal("375.32")
        assert retail.retail_before_tax == Decimal("1876.58")
        assert retail.final_retail == Decimal("1989.17")

        assert quote.guardrail.fallback_used is False
        assert quote.final_total == Decimal("1989.17")

    def test_hs_code_drives_duty(self, engine: QuoteEngine) -> None:
        product = ProductDescriptor(name="Compact refrigerator", hs_code="8418.10", price=Decimal("400"))
        quote = engine.quote(product)
        assert quote.duty.source == DutySource.HS_CODE
        assert quote.duty.duty_pct == Decimal("6.5")

    def test_dict_input(self, engine: QuoteEngine) -> None:
        quote = engine.quote({"title": "Wayfair Basics Dining Chair", "price": "$189.99", "retailer": "Wayfair"})
        assert quote.classification.brand == Brand.WAYFAIR
        assert quote.classification.category == Category.CHAIR
        assert quote.product.price == Decimal("189.99")


class TestDegenerateInput:
    """Quotes are always produced."""

    @pytest.mark.parametrize("product", [None, {}, ProductDescriptor(), "not a product", 42])
    def test_never_raises(self, engine: QuoteEngine, product) -> None:
        quote = engine.quote(product)
        assert quote.final_total > 0
        assert quote.guardrail.implied_multiplier is None
        assert quote.guardrail.fallback_used is False

    @pytest.mark.parametrize("policy", list(FeePolicy))
    def test_plain_number_fields(self, engine: QuoteEngine, policy: FeePolicy) -> None:
        product = ProductDescriptor(name="Accent chair", weight=5.0, price=1000.0)  # type: ignore[arg-type]
        quote = engine.quote(product, policy=policy)
        assert quote.product.price == Decimal("1000.0")
        assert quote.carton.cubic_feet > 0
        assert quote.final_total > 0

    def test_none_text_fields(self, engine: QuoteEngine) -> None:
        product = ProductDescriptor(name=None, brand="IKEA", url=None)  # type: ignore[arg-type]
        quote = engine.quote(product)
        assert quote.classification.brand == Brand.IKEA
        assert quote.classification.category == Category.DEFAULT

    def test_none_uses_default_carton(self, engine: QuoteEngine) -> None:
        quote = engine.quote(None)
        assert quote.carton.cubic_feet == Decimal("6.9")
        assert quote.duty.source == DutySource.DEFAULT

    def test_failed_table(self, settings: Settings, ikea_sectional: ProductDescriptor) -> None:
        quote = quote_product(ikea_sectional, settings=settings, table=fallback_table())
        assert quote.duty.duty_pct == Decimal("26.5")
        assert quote.duty.source == DutySource.DEFAULT_FALLBACK


class TestPolicies:
    """Tests for selecting a fee policy."""

    def test_flat_freight(self, engine: QuoteEngine, ikea_sectional: ProductDescriptor) -> None:
        quote = engine.quote(ikea_sectional, policy=FeePolicy.FLAT_FREIGHT)
        assert quote.retail is None
        assert quote.fees is not None
        assert quote.fees.total_with_margin == Decimal("218.75")
        # 1218.75 / 1000 is below 1.7
        assert quote.guardrail.fallback_used is True
        assert quote.final_total == Decimal("1950")

    def test_landed_cost(self, engine: QuoteEngine, ikea_sectional: ProductDescriptor) -> None:
        quote = engine.quote(ikea_sectional, policy=FeePolicy.LANDED_COST)
        assert quote.fees is not None
        assert quote.fees.total_with_margin == Decimal("410.90")
        assert quote.guardrail.implied_multiplier == Decimal("1.4109")
        assert quote.guardrail.fallback_used is True

    def test_cheap_item_hits_guardrail(self, engine: QuoteEngine) -> None:
        product = ProductDescriptor(name="Sectional sofa", price=Decimal("10"))
        quote = engine.quote(product)
        assert quote.guardrail.fallback_used is True
        assert quote.final_total == Decimal("19.50")


class TestQuoteProducts:
    def test_many(self, settings: Settings, tariff_table: TariffRuleTable, ikea_sectional, wayfair_sofa) -> None:
        quotes = quote_products([ikea_sectional, wayfair_sofa, None], settings=settings, table=tariff_table)
        assert len(quotes) == 3
        assert [q.classification.brand for q in quotes] == [Brand.IKEA, Brand.WAYFAIR, Brand.GENERIC]

    def test_as_dict_is_json(self, engine: QuoteEngine, wayfair_sofa: ProductDescriptor) -> None:
        data = engine.quote(wayfair_sofa).as_dict()
        text = json.dumps(data)
        assert '"final_total"' in text
        assert data["policy"] == "retail"
        assert data["product"]["breadcrumbs"] == ["Furniture", "Living Room", "Sofas & Couches"]
