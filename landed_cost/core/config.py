"""Configuration management for the landed cost estimator."""

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import FeePolicy

logger = logging.getLogger(__name__)


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".landed-cost"


def get_default_tariff_path() -> Path:
    """Get the path of the packaged tariff rule table."""
    return Path(__file__).resolve().parent.parent / "data" / "bermuda_duty_map.json"


class FlatFreightConfig(BaseModel):
    """Policy A: flat freight with a $5 safety buffer."""

    margin_rate: Decimal = Decimal("0.25")
    round_to: Decimal = Decimal("5")


class LandedCostConfig(BaseModel):
    """Policy B: margin on total landed cost, card fee after margin."""

    min_ocean_freight: Decimal = Decimal("30")
    margin_rate: Decimal = Decimal("0.20")
    card_fee_rate: Decimal = Decimal("0.04")


class RetailConfig(BaseModel):
    """Policy C: duty and wharfage on CIF, tax-inclusive retail."""

    duty_pct: Decimal = Decimal("25")
    wharfage_pct: Decimal = Decimal("1.5")
    margin_rate: Decimal = Decimal("0.25")
    card_fee_rate: Decimal = Decimal("0.035")
    min_freight: Decimal = Decimal("30")
    freight_pct_of_price: Decimal = Decimal("0.5")  # used when no volume is known


class TariffConfig(BaseModel):
    """Tariff rule table configuration."""

    rules_path: Path | None = None  # None means the packaged table
    default_duty_pct: Decimal = Decimal("26.5")


class CartonConfig(BaseModel):
    """Billable volume constants."""

    safety_factor: Decimal = Decimal("1.15")
    min_charge_cuft: Decimal = Decimal("2.2")
    max_cuft: Decimal = Decimal("180")
    fallback_cuft: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "sofa": Decimal("56"),
            "sectional": Decimal("56"),
            "couch": Decimal("56"),
            "loveseat": Decimal("35"),
            "recliner": Decimal("28"),
            "chair": Decimal("3"),
            "office_chair": Decimal("3"),
            "desk": Decimal("3"),
            "table": Decimal("8"),
            "dresser": Decimal("18"),
            "bedframe": Decimal("14"),
            "mattress": Decimal("20"),
            "other": Decimal("11.33"),
        }
    )


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=str(get_config_dir() / ".env"),
        env_file_encoding="utf-8",
        env_prefix="",
        env_nested_delimiter="__",
        populate_by_name=True,
        extra="ignore",
    )

    # Shared fee inputs
    freight_rate_per_cuft: Decimal = Decimal("8.50")
    customs_clear_fee_per_vendor: Decimal = Decimal("10")
    default_handling_fee: Decimal = Decimal("15")

    # Overrides for the per-policy defaults; None means use the policy value
    card_fee_rate: Decimal | None = None
    margin_rate: Decimal | None = Field(
        default=None,
        validation_alias=AliasChoices("margin_rate", "MARGIN_RATE", "margin_pct", "MARGIN_PCT"),
    )

    # Sales tax
    apply_nj_tax: bool = True
    nj_tax_rate_pct: Decimal = Decimal("6.0")

    # Policies
    flat_freight: FlatFreightConfig = Field(default_factory=FlatFreightConfig)
    landed: LandedCostConfig = Field(default_factory=LandedCostConfig)
    retail: RetailConfig = Field(default_factory=RetailConfig)

    tariff: TariffConfig = Field(default_factory=TariffConfig)
    carton: CartonConfig = Field(default_factory=CartonConfig)

    log_level: str = "INFO"

    def get_effective_margin_rate(self, policy: FeePolicy) -> Decimal:
        """Get the margin rate for a policy (global override wins)."""
        if self.margin_rate is not None:
            return self.margin_rate
        if policy == FeePolicy.FLAT_FREIGHT:
            return self.flat_freight.margin_rate
        elif policy == FeePolicy.LANDED_COST:
            return self.landed.margin_rate
        elif policy == FeePolicy.RETAIL:
            return self.retail.margin_rate
        else:
            raise ValueError(f"Unknown fee policy: {policy}")

    def get_effective_card_fee_rate(self, policy: FeePolicy) -> Decimal:
        """Get the card fee rate for a policy (global override wins)."""
        if self.card_fee_rate is not None:
            return self.card_fee_rate
        if policy == FeePolicy.FLAT_FREIGHT:
            return Decimal("0")
        elif policy == FeePolicy.LANDED_COST:
            return self.landed.card_fee_rate
        elif policy == FeePolicy.RETAIL:
            return self.retail.card_fee_rate
        else:
            raise ValueError(f"Unknown fee policy: {policy}")

    def get_tariff_path(self) -> Path:
        """Get the tariff rule table path."""
        return self.tariff.rules_path or get_default_tariff_path()

    def save(self, config_path: Path | None = None) -> None:
        """Save settings to the config file."""
        config_path = config_path or get_config_dir() / "settings.json"
        config_path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump(mode="json")
        # Convert Decimal to string for JSON serialization
        data = self._convert_decimals(data)
        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    def _convert_decimals(self, obj: Any) -> Any:
        """Recursively convert Decimal to string for JSON serialization."""
        if isinstance(obj, Decimal):
            return str(obj)
        elif isinstance(obj, dict):
            return {k: self._convert_decimals(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [self._convert_decimals(item) for item in obj]
        return obj

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Settings":
        """Load settings from the config file or create defaults."""
        config_path = config_path or get_config_dir() / "settings.json"

        try:
            settings = cls()
        except ValidationError as e:
            logger.warning(f"Ignoring invalid environment settings, using defaults: {e}")
            settings = cls.model_construct()

        if config_path.exists():
            try:
                with open(config_path) as f:
                    data = json.load(f)
                settings = cls.model_validate(data)
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Ignoring unreadable settings file {config_path}: {e}")

        return settings


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from disk."""
    global _settings
    _settings = Settings.load()
    return _settings
