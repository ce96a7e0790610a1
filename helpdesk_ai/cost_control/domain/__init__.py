"""
Cost Control Domain Layer
=========================

Pure domain objects: ledger records, limits, pricing.
"""

from helpdesk_ai.cost_control.domain.entities import (
    UsageRecord,
    CostLimits,
    UsageSummary,
    BlockDecision,
    CostEstimate,
    LIMIT_FIELDS,
    FREE_TIER_CAPS,
    DEFAULT_FREE_TIER_LIMITS,
    DEFAULT_PAID_LIMITS,
)
from helpdesk_ai.cost_control.domain.pricing import (
    ModelPricing,
    PricingTable,
    PRICING_TABLE,
    DEFAULT_PRICING_MODEL,
    estimate_tokens,
    calculate_cost,
)

__all__ = [
    "UsageRecord",
    "CostLimits",
    "UsageSummary",
    "BlockDecision",
    "CostEstimate",
    "LIMIT_FIELDS",
    "FREE_TIER_CAPS",
    "DEFAULT_FREE_TIER_LIMITS",
    "DEFAULT_PAID_LIMITS",
    "ModelPricing",
    "PricingTable",
    "PRICING_TABLE",
    "DEFAULT_PRICING_MODEL",
    "estimate_tokens",
    "calculate_cost",
]
