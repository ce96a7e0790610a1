"""
Model pricing and token estimation.

Prices are USD per one million tokens, split by input and output, as
published for on-demand usage. The table is static: there is no dynamic
fetching, and unknown models are priced as the default model.
"""

import math
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

PER_MILLION = Decimal("1000000")
COST_QUANTUM = Decimal("0.00000001")

DEFAULT_PRICING_MODEL = "amazon.titan-text-express-v1"


@dataclass(frozen=True)
class ModelPricing:
    """Per-token pricing for a specific model."""
    input_cost_per_1m: Decimal
    output_cost_per_1m: Decimal


@dataclass(frozen=True)
class PricingTable:
    """Fixed pricing table for supported models."""
    prices: Dict[str, ModelPricing]
    default_model: str = DEFAULT_PRICING_MODEL

    def get_pricing(self, model_id: str) -> ModelPricing:
        """
        Pricing for ``model_id``; falls back to the default model with a
        warning instead of raising.
        """
        pricing = self.prices.get(model_id)
        if pricing is None:
            logger.warning(
                "No pricing for model, using default model pricing",
                extra={"model_id": model_id, "default_model": self.default_model}
            )
            pricing = self.prices[self.default_model]
        return pricing

    def knows(self, model_id: str) -> bool:
        return model_id in self.prices


def _price(input_cost: str, output_cost: str) -> ModelPricing:
    return ModelPricing(Decimal(input_cost), Decimal(output_cost))


PRICING_TABLE = PricingTable({
    # Amazon Titan
    "amazon.titan-text-express-v1": _price("0.80", "3.20"),
    "amazon.titan-text-lite-v1": _price("0.30", "1.20"),
    "amazon.titan-embed-text-v1": _price("0.10", "0.10"),
    # AI21 Jurassic-2
    "ai21.j2-mid-v1": _price("1.25", "1.25"),
    "ai21.j2-ultra-v1": _price("3.75", "3.75"),
    # Meta Llama
    "meta.llama2-13b-chat-v1": _price("0.75", "0.75"),
    "meta.llama2-70b-chat-v1": _price("2.65", "2.65"),
    "meta.llama3-8b-instruct-v1:0": _price("0.60", "0.60"),
    "meta.llama3-70b-instruct-v1:0": _price("2.65", "2.65"),
    # Anthropic Claude 3
    "anthropic.claude-3-haiku-20240307-v1:0": _price("0.25", "1.25"),
    "anthropic.claude-3-sonnet-20240229-v1:0": _price("3.00", "15.00"),
    "anthropic.claude-3-opus-20240229-v1:0": _price("15.00", "75.00"),
    # OpenAI
    "gpt-4o-mini": _price("0.15", "0.60"),
    "gpt-4o": _price("2.50", "10.00"),
})


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def calculate_cost(
    model_id: str,
    input_tokens: int,
    output_tokens: int,
    table: PricingTable = PRICING_TABLE
) -> float:
    """
    USD cost of a call.

    Computed in Decimal and quantized to 1e-8 USD, which is
    below the smallest per-token price in the table.
    """
    pricing = table.get_pricing(model_id)
    input_cost = Decimal(max(0, input_tokens)) / PER_MILLION * pricing.input_cost_per_1m
    output_cost = Decimal(max(0, output_tokens)) / PER_MILLION * pricing.output_cost_per_1m
    total = (input_cost + output_cost).quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)
    return float(total)
