"""
Pricing calculations for remote calls.

Costs are estimates derived from reported token usage; they feed the
monthly cost counter of the usage ledger.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_UP
from typing import Dict, Mapping, Optional

from .token_counter import TokenUsage

logger = logging.getLogger(__name__)

_PER_MILLION = Decimal("1000000")


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    prompt_cost_per_million: Decimal  # Cost per 1M prompt tokens
    completion_cost_per_million: Decimal  # Cost per 1M completion tokens


@dataclass(frozen=True)
class PricingTable:
    """Pricing table keyed by model identifier."""
    prices: Dict[str, ModelPricing]

    def get_pricing(self, model: str) -> ModelPricing:
        """Get pricing for a specific model.

        Raises:
            ValueError: If model is not priced
        """
        if model not in self.prices:
            raise ValueError(f"Unsupported model: {model}")
        return self.prices[model]

    def extended(self, extra: Mapping[str, ModelPricing]) -> "PricingTable":
        """Return a new table with extra entries overriding existing ones."""
        prices = dict(self.prices)
        prices.update(extra)
        return PricingTable(prices)


# OpenRouter model identifiers, USD per million tokens
PRICING_TABLE = PricingTable({
    "openai/gpt-4o-mini": ModelPricing(
        prompt_cost_per_million=Decimal("0.15"),
        completion_cost_per_million=Decimal("0.60")
    ),
    "openai/gpt-4o": ModelPricing(
        prompt_cost_per_million=Decimal("2.50"),
        completion_cost_per_million=Decimal("10.00")
    ),
    "anthropic/claude-3.5-haiku": ModelPricing(
        prompt_cost_per_million=Decimal("0.80"),
        completion_cost_per_million=Decimal("4.00")
    ),
    "google/gemini-flash-1.5": ModelPricing(
        prompt_cost_per_million=Decimal("0.075"),
        completion_cost_per_million=Decimal("0.30")
    ),
})


def calculate_cost(model: str, usage: TokenUsage, table: PricingTable = PRICING_TABLE) -> float:
    """Calculate total cost for model usage with conservative rounding.

    Args:
        model: Model identifier
        usage: Token usage data
        table: Pricing table to consult

    Returns:
        Total cost rounded UP to 6 decimal places

    Raises:
        ValueError: If model is not supported
    """
    pricing = table.get_pricing(model)

    prompt_cost = (Decimal(usage.prompt_tokens) / _PER_MILLION) * pricing.prompt_cost_per_million
    completion_cost = (Decimal(usage.completion_tokens) / _PER_MILLION) * pricing.completion_cost_per_million

    # Always round UP so the ledger never under-reports
    total_cost = prompt_cost + completion_cost
    rounded_cost = total_cost.quantize(Decimal("0.000001"), rounding=ROUND_UP)

    return float(rounded_cost)


def estimate_cost(model: str, usage: Optional[TokenUsage], table: PricingTable = PRICING_TABLE) -> float:
    """Like calculate_cost, but returns 0.0 when the cost cannot be known."""
    if usage is None:
        logger.debug("No usage reported for %s, cost estimated as 0", model)
        return 0.0
    try:
        return calculate_cost(model, usage, table)
    except ValueError:
        logger.warning("No pricing for model %s, cost estimated as 0", model)
        return 0.0
