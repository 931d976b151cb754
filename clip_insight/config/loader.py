"""
Configuration management and loading.

Reads assistant settings from an optional YAML file with strict validation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from clip_insight.core.pricing import PRICING_TABLE, ModelPricing, PricingTable

DEFAULT_CONFIG_PATH = "clip-insight.yaml"

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "openai/gpt-4o-mini"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MINIMUM_INTERVAL_SECONDS = 2.0
DEFAULT_DB_PATH = ".clip-insight.db"


@dataclass(frozen=True)
class ModelPricingConfig:
    """Pricing override for one model, USD per million tokens."""
    prompt_per_million: float
    completion_per_million: float

    def __post_init__(self):
        """Validate prices are non-negative."""
        if self.prompt_per_million < 0:
            raise ValueError("prompt_per_million must be >= 0")
        if self.completion_per_million < 0:
            raise ValueError("completion_per_million must be >= 0")

    def to_model_pricing(self) -> ModelPricing:
        return ModelPricing(
            prompt_cost_per_million=Decimal(str(self.prompt_per_million)),
            completion_cost_per_million=Decimal(str(self.completion_per_million)),
        )


@dataclass(frozen=True)
class AssistantSettings:
    """Complete assistant configuration."""
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    minimum_interval_seconds: float = DEFAULT_MINIMUM_INTERVAL_SECONDS
    db_path: str = DEFAULT_DB_PATH
    max_content_chars: int = 4000
    max_clipping_chars: int = 200
    max_group_clippings: int = 50
    pricing: Dict[str, ModelPricingConfig] = field(default_factory=dict)

    def __post_init__(self):
        """Validate numeric limits."""
        if not self.model or not self.model.strip():
            raise ValueError("model cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        if self.minimum_interval_seconds < 0:
            raise ValueError("minimum_interval_seconds must be >= 0")
        for name in ("max_content_chars", "max_clipping_chars", "max_group_clippings"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")

    def pricing_table(self) -> PricingTable:
        """Built-in pricing extended with configured overrides."""
        return PRICING_TABLE.extended(
            {model: config.to_model_pricing() for model, config in self.pricing.items()}
        )


_STRING_KEYS = {"model", "base_url", "db_path"}
_FLOAT_KEYS = {"timeout_seconds", "minimum_interval_seconds"}
_INT_KEYS = {"max_content_chars", "max_clipping_chars", "max_group_clippings"}
_ALLOWED_KEYS = _STRING_KEYS | _FLOAT_KEYS | _INT_KEYS | {"pricing"}


def load_settings(path: Optional[str] = None) -> AssistantSettings:
    """Load and validate assistant settings from a YAML file.

    Without an explicit path, `clip-insight.yaml` in the working directory
    is used when present and defaults otherwise.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AssistantSettings object

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        if not Path(DEFAULT_CONFIG_PATH).exists():
            return AssistantSettings()
        path = DEFAULT_CONFIG_PATH

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return AssistantSettings()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    unknown_keys = set(raw_config.keys()) - _ALLOWED_KEYS
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    values: Dict[str, Any] = {}
    for key, value in raw_config.items():
        if key in _STRING_KEYS:
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"'{key}' must be a non-empty string")
            values[key] = value.strip()
        elif key in _FLOAT_KEYS:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"'{key}' must be a number")
            values[key] = float(value)
        elif key in _INT_KEYS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{key}' must be an integer")
            values[key] = value

    if "pricing" in raw_config:
        values["pricing"] = _parse_pricing(raw_config["pricing"])

    return AssistantSettings(**values)


def _parse_pricing(data: Any) -> Dict[str, ModelPricingConfig]:
    """Parse and validate the pricing section.

    Raises:
        ValueError: If the section is invalid
    """
    if not isinstance(data, dict):
        raise ValueError("'pricing' must be a dictionary")

    allowed_keys = {"prompt_per_million", "completion_per_million"}
    pricing = {}
    for model, entry in data.items():
        path = f"pricing.{model}"
        if not isinstance(entry, dict):
            raise ValueError(f"'{path}' must be a dictionary")
        unknown_keys = set(entry.keys()) - allowed_keys
        if unknown_keys:
            raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
        for key in allowed_keys:
            if key not in entry:
                raise ValueError(f"Missing required '{key}' in {path}")
            value = entry[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
                raise ValueError(f"'{key}' in {path} must be a number >= 0")
        pricing[str(model)] = ModelPricingConfig(
            prompt_per_million=float(entry["prompt_per_million"]),
            completion_per_million=float(entry["completion_per_million"]),
        )
    return pricing
