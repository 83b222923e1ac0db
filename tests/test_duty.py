"""Tests for duty resolution."""

from decimal import Decimal
from pathlib import Path

import pytest

from landed_cost.core import config
from landed_cost.core.config import Settings, TariffConfig
from landed_cost.core.duty import (
    TariffTableError,
    estimate_duty,
    fallback_table,
    get_tariff_table,
    load_tariff_table,
)
from landed_cost.core.models import DutySource, TariffRule, TariffRuleTable


def _table(*rules: TariffRule, default: str = "26.5") -> TariffRuleTable:
    return TariffRuleTable(default_duty_pct=Decimal(default), rules=rules)


class TestEstimateDuty:
    """Tests for rule scoring and selection."""

    def test_hs_code_beats_everything(self) -> None:
        table = _table(
            TariffRule(duty_pct=Decimal("30"), hs=("9401",), note="seats"),
            TariffRule(duty_pct=Decimal("5"), vendors_any=("acme",)),
            TariffRule(duty_pct=Decimal("1"), keywords_any=("sofa", "couch", "leather")),
        )
        result = estimate_duty(title="Leather sofa couch", vendor="Acme Furniture", hs_code="9401.61.4011", table=table)
        assert result.duty_pct == Decimal("30")
        assert result.source == DutySource.HS_CODE
        assert result.note == "seats"

    def test_vendor_beats_keywords(self) -> None:
        table = _table(
            TariffRule(duty_pct=Decimal("12"), vendors_any=("crate",)),
            TariffRule(duty_pct=Decimal("20"), keywords_any=("sofa", "couch", "leather")),
        )
        result = estimate_duty(title="Leather sofa couch", vendor="Crate & Barrel", table=table)
        assert result.duty_pct == Decimal("12")
        assert result.source == DutySource.VENDOR

    def test_more_keyword_hits_win(self) -> None:
        table = _table(
            TariffRule(duty_pct=Decimal("10"), keywords_any=("sofa",)),
            TariffRule(duty_pct=Decimal("20"), keywords_any=("sofa", "sleeper")),
        )
        result = estimate_duty(title="Sleeper sofa", table=table)
        assert result.duty_pct == Decimal("20")
        assert result.source == DutySource.KEYWORD

    def test_keywords_search_category_and_brand(self) -> None:
        table = _table(TariffRule(duty_pct=Decimal("8"), keywords_any=("outdoor",)))
        result = estimate_duty(title="Bistro set", category="Outdoor Furniture", table=table)
        assert result.duty_pct == Decimal("8")

    def test_tie_prefers_lower_duty(self) -> None:
        table = _table(
            TariffRule(duty_pct=Decimal("33"), keywords_any=("table",)),
            TariffRule(duty_pct=Decimal("15"), keywords_any=("table",)),
            TariffRule(duty_pct=Decimal("25"), keywords_any=("table",)),
        )
        result = estimate_duty(title="Coffee table", table=table)
        assert result.duty_pct == Decimal("15")

    def test_no_match_uses_default(self) -> None:
        table = _table(TariffRule(duty_pct=Decimal("10"), keywords_any=("lamp",)), default="22")
        result = estimate_duty(title="Dresser", table=table)
        assert result.duty_pct == Decimal("22")
        assert result.source == DutySource.DEFAULT

    def test_fallback_table(self) -> None:
        result = estimate_duty(title="Dresser", table=fallback_table())
        assert result.duty_pct == Decimal("26.5")
        assert result.source == DutySource.DEFAULT_FALLBACK

    @pytest.mark.parametrize("raw,expected", [("999", "40"), ("-5", "0"), ("40", "40")])
    def test_rule_duty_clamped(self, raw: str, expected: str) -> None:
        table = _table(TariffRule(duty_pct=Decimal(raw), keywords_any=("rug",)))
        assert estimate_duty(title="Wool rug", table=table).duty_pct == Decimal(expected)

    def test_default_duty_clamped(self) -> None:
        result = estimate_duty(title="Anything", table=_table(default="75"))
        assert result.duty_pct == Decimal("40")

    def test_idempotent(self, tariff_table: TariffRuleTable) -> None:
        kwargs = dict(category="Sofas", title="KIVIK sofa", brand="IKEA", vendor="IKEA", hs_code="")
        first = estimate_duty(**kwargs, table=tariff_table)
        second = estimate_duty(**kwargs, table=tariff_table)
        assert (first.duty_pct, first.source) == (second.duty_pct, second.source)

    def test_all_inputs_missing(self, tariff_table: TariffRuleTable) -> None:
        result = estimate_duty(table=tariff_table)
        assert result.source == DutySource.DEFAULT
        assert result.duty_pct == Decimal("26.5")


class TestLoadTariffTable:
    """Tests for reading rule files."""

    def test_packaged_table(self, tariff_table: TariffRuleTable) -> None:
        assert tariff_table.rules
        assert tariff_table.default_duty_pct == Decimal("26.5")
        assert tariff_table.load_failed is False

    def test_file_format(self, tariff_file: Path) -> None:
        table = load_tariff_table(tariff_file)
        assert table.version == "test-1"
        assert table.default_duty_pct == Decimal("22")
        assert table.rules[0].hs == ("9401",)
        assert table.rules[1].vendors_any == ("crate",)
        assert table.rules[2].keywords_any == ("lamp", "light")

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(TariffTableError):
            load_tariff_table(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(TariffTableError):
            load_tariff_table(path)

    def test_wrong_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "shape.json"
        path.write_text('{"rules": [{"match": {}, "dutyPct": "lots"}]}', encoding="utf-8")
        with pytest.raises(TariffTableError):
            load_tariff_table(path)


class TestGetTariffTable:
    """Tests for the lazily loaded shared table."""

    def test_load_failure_degrades(self, tmp_path: Path) -> None:
        settings = Settings(tariff=TariffConfig(rules_path=tmp_path / "missing.json"))
        table = get_tariff_table(settings)
        assert table.load_failed is True
        assert table.rules == ()

        result = estimate_duty(title="Sofa", table=table)
        assert result.duty_pct == Decimal("26.5")
        assert result.source == DutySource.DEFAULT_FALLBACK

    def test_loaded_once(self, tariff_file: Path, tmp_path: Path) -> None:
        first = get_tariff_table(Settings(tariff=TariffConfig(rules_path=tariff_file)))
        second = get_tariff_table(Settings(tariff=TariffConfig(rules_path=tmp_path / "other.json")))
        assert second is first
        assert first.version == "test-1"

    def test_uses_configured_file(self, tariff_file: Path) -> None:
        table = get_tariff_table(Settings(tariff=TariffConfig(rules_path=tariff_file)))
        result = estimate_duty(title="Brass floor lamp", table=table)
        assert result.duty_pct == Decimal("10")
        assert result.source == DutySource.KEYWORD

    def test_global_settings_missing_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        settings = Settings(tariff=TariffConfig(rules_path=tmp_path / "missing.json"))
        monkeypatch.setattr(config, "_settings", settings)

        result = estimate_duty(title="Sofa")
        assert result.duty_pct == Decimal("26.5")
        assert result.source == DutySource.DEFAULT_FALLBACK

    def test_invalid_environment(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("FREIGHT_RATE_PER_CUFT", "abc")
        monkeypatch.setattr(config, "_settings", None)
        monkeypatch.setattr(config, "get_config_dir", lambda: tmp_path)

        result = estimate_duty(title="Sofa")
        assert result.duty_pct == Decimal("26.5")
        assert config.get_settings().freight_rate_per_cuft == Decimal("8.50")

    def test_settings_error_degrades(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def broken_settings() -> Settings:
            return Settings.model_validate({"freight_rate_per_cuft": "abc"})

        monkeypatch.setattr(config, "get_settings", broken_settings)

        table = get_tariff_table()
        assert table.load_failed is True
        assert estimate_duty(title="Sofa", table=table).source == DutySource.DEFAULT_FALLBACK
