"""
Cost Control DTOs
=================

Pydantic models for the cost endpoints.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from helpdesk_ai.cost_control.domain import CostLimits, UsageRecord, UsageSummary


class CostLimitsUpdateRequest(BaseModel):
    """Partial update of the cost limits; omitted fields are kept."""
    daily_limit_usd: Optional[float] = Field(None, ge=0, description="Daily spend ceiling (USD)")
    monthly_limit_usd: Optional[float] = Field(None, ge=0, description="Monthly spend ceiling (USD)")
    max_tokens_per_request: Optional[int] = Field(None, ge=0, description="Input + output tokens per call")
    max_requests_per_day: Optional[int] = Field(None, ge=0)
    max_requests_per_hour: Optional[int] = Field(None, ge=0)
    is_free_tier_account: Optional[bool] = None


class CostLimitsResponse(BaseModel):
    daily_limit_usd: float
    monthly_limit_usd: float
    max_tokens_per_request: int
    max_requests_per_day: int
    max_requests_per_hour: int
    is_free_tier_account: bool

    @classmethod
    def from_domain(cls, limits: CostLimits) -> "CostLimitsResponse":
        return cls(**limits.to_dict())


class UsageSummaryResponse(BaseModel):
    total_input_tokens: int
    total_output_tokens: int
    total_tokens: int
    total_cost: float
    request_count: int
    operations: Dict[str, int]

    @classmethod
    def from_domain(cls, summary: UsageSummary) -> "UsageSummaryResponse":
        return cls(**summary.to_dict())


class UsageRecordResponse(BaseModel):
    id: Optional[int] = None
    timestamp: datetime
    model_id: str
    input_tokens: int
    output_tokens: int
    estimated_cost: float
    operation: str
    user_id: Optional[str] = None
    ticket_id: Optional[str] = None

    @classmethod
    def from_domain(cls, record: UsageRecord) -> "UsageRecordResponse":
        return cls(
            id=record.id,
            timestamp=record.timestamp,
            model_id=record.model_id,
            input_tokens=record.input_tokens,
            output_tokens=record.output_tokens,
            estimated_cost=record.estimated_cost,
            operation=record.operation,
            user_id=record.user_id,
            ticket_id=record.ticket_id,
        )


class CostStatisticsResponse(BaseModel):
    daily: UsageSummaryResponse
    monthly: UsageSummaryResponse
    limits: CostLimitsResponse
    recent_usage: List[UsageRecordResponse]


class UsageExportResponse(BaseModel):
    start: datetime
    end: datetime
    records: List[UsageRecordResponse]
    total_cost: float


class UsageResetResponse(BaseModel):
    removed_records: int
