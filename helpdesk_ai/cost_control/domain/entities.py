"""
Cost Control Domain Entities
============================

Usage ledger records, spend limits and the value objects exchanged between
the governor and the model gateway.
"""

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class UsageRecord:
    """
    One model call in the usage ledger.

    Immutable once written; the ledger only appends and prunes.
    """
    timestamp: datetime
    model_id: str
    input_tokens: int
    output_tokens: int
    estimated_cost: float
    operation: str
    user_id: Optional[str] = None
    ticket_id: Optional[str] = None
    id: Optional[int] = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "model_id": self.model_id,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "estimated_cost": self.estimated_cost,
            "operation": self.operation,
            "user_id": self.user_id,
            "ticket_id": self.ticket_id,
        }


# Numeric fields of CostLimits, in the order they are capped
LIMIT_FIELDS = (
    "daily_limit_usd",
    "monthly_limit_usd",
    "max_tokens_per_request",
    "max_requests_per_day",
    "max_requests_per_hour",
)


@dataclass(frozen=True)
class CostLimits:
    """Spend and rate limits. Exactly one active row exists."""
    daily_limit_usd: float
    monthly_limit_usd: float
    max_tokens_per_request: int
    max_requests_per_day: int
    max_requests_per_hour: int
    is_free_tier_account: bool = True

    def merged(self, partial: Mapping[str, Any]) -> "CostLimits":
        """Copy with the known, non-None keys of ``partial`` applied."""
        known = {f.name for f in fields(self)}
        changes = {k: v for k, v in partial.items() if k in known and v is not None}
        return replace(self, **changes)

    def clamped_to(self, caps: "CostLimits") -> "CostLimits":
        """
        Every numeric field becomes ``min(value or cap, cap)``: a missing or
        zero value takes the cap, anything above it is cut down.
        """
        changes = {}
        for name in LIMIT_FIELDS:
            cap = getattr(caps, name)
            value = getattr(self, name)
            changes[name] = min(value or cap, cap)
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# Hard ceilings for free-tier accounts
FREE_TIER_CAPS = CostLimits(
    daily_limit_usd=3.0,
    monthly_limit_usd=25.0,
    max_tokens_per_request=3000,
    max_requests_per_day=1500,
    max_requests_per_hour=300,
    is_free_tier_account=True,
)

# Seeded on first load when nothing is stored
DEFAULT_FREE_TIER_LIMITS = CostLimits(
    daily_limit_usd=5.0,
    monthly_limit_usd=50.0,
    max_tokens_per_request=1000,
    max_requests_per_day=50,
    max_requests_per_hour=10,
    is_free_tier_account=True,
)

DEFAULT_PAID_LIMITS = CostLimits(
    daily_limit_usd=100.0,
    monthly_limit_usd=1000.0,
    max_tokens_per_request=4000,
    max_requests_per_day=1000,
    max_requests_per_hour=100,
    is_free_tier_account=False,
)


@dataclass
class UsageSummary:
    """Aggregated ledger usage over a period."""
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost: float = 0.0
    request_count: int = 0
    operations: Dict[str, int] = field(default_factory=dict)

    def add(self, record: UsageRecord) -> None:
        self.total_input_tokens += record.input_tokens
        self.total_output_tokens += record.output_tokens
        self.total_cost += record.estimated_cost
        self.request_count += 1
        self.operations[record.operation] = self.operations.get(record.operation, 0) + 1

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "total_tokens": self.total_tokens,
            "total_cost": round(self.total_cost, 6),
            "request_count": self.request_count,
            "operations": dict(self.operations),
        }


@dataclass(frozen=True)
class BlockDecision:
    """Outcome of a pre-call budget check."""
    blocked: bool
    estimated_cost: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class CostEstimate:
    """Pre-call estimate attached to a gateway result or refusal."""
    model_id: str
    input_tokens: int
    output_tokens: int
    estimated_cost: float
