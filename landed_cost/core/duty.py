"""Duty rate resolution against the tariff rule table."""

from __future__ import annotations

import json
import logging
import threading
from decimal import Decimal
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .models import DutyDecision, DutySource, TariffRule, TariffRuleTable
from .money import clamp

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)

MIN_DUTY_PCT = Decimal("0")
MAX_DUTY_PCT = Decimal("40")

HS_CODE_SCORE = 1000
VENDOR_SCORE = 100


class TariffTableError(Exception):
    """Raised when the tariff rule file is missing or malformed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class _RuleMatchSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    hs: list[str] = Field(default_factory=list)
    vendors_any: list[str] = Field(default_factory=list, alias="vendorsAny")
    keywords_any: list[str] = Field(default_factory=list, alias="keywordsAny")


class _RuleSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match: _RuleMatchSchema = Field(default_factory=_RuleMatchSchema)
    duty_pct: Decimal = Field(alias="dutyPct")
    note: str = ""


class _MetaSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    version: str = ""
    default_duty_pct: Decimal | None = Field(default=None, alias="defaultDutyPct")


class _TableSchema(BaseModel):
    meta: _MetaSchema = Field(default_factory=_MetaSchema, alias="_meta")
    rules: list[_RuleSchema] = Field(default_factory=list)


def _normalize(value: object) -> str:
    if value is None:
        return ""
    return str(value).lower().strip()


def load_tariff_table(path: str | Path, default_duty_pct: Decimal = Decimal("26.5")) -> TariffRuleTable:
    """Load and validate a tariff rule file.

    Raises TariffTableError when the file cannot be read or does not match
    the expected shape.
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as e:
        raise TariffTableError(f"Cannot read tariff table {path}: {e}", path=path) from e
    except ValueError as e:
        raise TariffTableError(f"Invalid JSON in tariff table {path}: {e}", path=path) from e

    try:
        schema = _TableSchema.model_validate(raw)
    except ValidationError as e:
        raise TariffTableError(f"Malformed tariff table {path}: {e}", path=path) from e

    rules = tuple(
        TariffRule(
            duty_pct=r.duty_pct,
            hs=tuple(_normalize(h) for h in r.match.hs if _normalize(h)),
            vendors_any=tuple(_normalize(v) for v in r.match.vendors_any if _normalize(v)),
            keywords_any=tuple(_normalize(k) for k in r.match.keywords_any if _normalize(k)),
            note=r.note,
        )
        for r in schema.rules
    )

    return TariffRuleTable(
        default_duty_pct=schema.meta.default_duty_pct or default_duty_pct,
        rules=rules,
        version=schema.meta.version,
    )


def fallback_table(default_duty_pct: Decimal = Decimal("26.5")) -> TariffRuleTable:
    """Table used when the rule file could not be loaded."""
    return TariffRuleTable(default_duty_pct=default_duty_pct, rules=(), load_failed=True)


# Process-wide table, assigned once
_table: TariffRuleTable | None = None
_table_lock = threading.Lock()


def get_tariff_table(settings: Settings | None = None) -> TariffRuleTable:
    """Get the shared tariff table, loading it on first use.

    Never raises: a missing or malformed file degrades to a rule-less table
    carrying the configured default percentage.
    """
    global _table
    if _table is not None:
        return _table

    with _table_lock:
        if _table is None:
            if settings is None:
                from .config import get_settings

                try:
                    settings = get_settings()
                except ValidationError as e:
                    logger.warning(f"Invalid settings, using default tariff table: {e}")
                    _table = fallback_table()
                    return _table

            path = settings.get_tariff_path()
            default_pct = settings.tariff.default_duty_pct
            try:
                _table = load_tariff_table(path, default_pct)
                logger.info(
                    f"Loaded tariff table v{_table.version or '?'} with {len(_table.rules)} rules from {path}"
                )
            except TariffTableError as e:
                logger.warning(f"Failed to load tariff table, using default {default_pct}%: {e}")
                _table = fallback_table(default_pct)
    return _table


def reset_tariff_table() -> None:
    """Forget the loaded table so the next call reloads it."""
    global _table
    with _table_lock:
        _table = None


def score_rule(rule: TariffRule, hs_code: str, vendor: str, search_text: str) -> int:
    """Score one rule: HS prefix 1000, vendor 100, else keyword hit count."""
    if hs_code and any(hs_code.startswith(prefix) for prefix in rule.hs):
        return HS_CODE_SCORE

    if vendor and any(v in vendor for v in rule.vendors_any):
        return VENDOR_SCORE

    return sum(1 for kw in rule.keywords_any if kw in search_text)


def _source_for(score: int) -> DutySource:
    if score >= HS_CODE_SCORE:
        return DutySource.HS_CODE
    if score >= VENDOR_SCORE:
        return DutySource.VENDOR
    return DutySource.KEYWORD


def estimate_duty(
    category: str | None = None,
    title: str | None = None,
    brand: str | None = None,
    vendor: str | None = None,
    hs_code: str | None = None,
    table: TariffRuleTable | None = None,
) -> DutyDecision:
    """Pick a duty percentage for a product from the tariff rule table.

    The highest scoring rule wins; on a tie the lower duty wins. With no match
    the table default is used. The result is always clamped to [0, 40].
    """
    if table is None:
        table = get_tariff_table()

    norm_hs = _normalize(hs_code)
    norm_vendor = _normalize(vendor)
    search_text = f"{_normalize(title)} {_normalize(category)} {_normalize(brand)}"

    best: TariffRule | None = None
    best_score = 0

    for rule in table.rules:
        score = score_rule(rule, norm_hs, norm_vendor, search_text)
        if score <= 0:
            continue
        if best is None or score > best_score or (score == best_score and rule.duty_pct < best.duty_pct):
            best = rule
            best_score = score

    if best is not None:
        source = _source_for(best_score)
        duty_pct = clamp(best.duty_pct, MIN_DUTY_PCT, MAX_DUTY_PCT)
        logger.debug(f"Duty chosen: {duty_pct}% via {source.value} ({best.note})")
        return DutyDecision(duty_pct=duty_pct, source=source, note=best.note)

    source = DutySource.DEFAULT_FALLBACK if table.load_failed else DutySource.DEFAULT
    duty_pct = clamp(table.default_duty_pct, MIN_DUTY_PCT, MAX_DUTY_PCT)
    logger.debug(f"Duty chosen: {duty_pct}% via {source.value}")
    return DutyDecision(duty_pct=duty_pct, source=source)
