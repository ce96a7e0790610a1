"""
Cost Control Controllers (API Routes)
=====================================

FastAPI routes for AI spend monitoring and limits.
"""

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from helpdesk_ai.cost_control.application import (
    CostGovernor,
    CostLimitsResponse,
    CostLimitsUpdateRequest,
    CostStatisticsResponse,
    UsageExportResponse,
    UsageRecordResponse,
    UsageResetResponse,
    UsageSummaryResponse,
)
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/ai/costs", tags=["AI Cost Control"])


# ========== Dependencies ==========

def get_cost_governor(request: Request) -> CostGovernor:
    """Get the cost governor from app state."""
    governor = getattr(request.app.state, "cost_governor", None)
    if governor is None:
        raise HTTPException(
            status_code=503,
            detail="Cost governor not available - database not initialized"
        )
    return governor


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


# ========== Route Handlers ==========

@router.get(
    "",
    response_model=CostStatisticsResponse,
    summary="Cost statistics",
    description="Today's and this month's usage, the active limits and the 10 most recent calls."
)
async def get_cost_statistics(governor: CostGovernor = Depends(get_cost_governor)):
    return CostStatisticsResponse(**await governor.get_cost_statistics())


@router.get(
    "/daily",
    response_model=UsageSummaryResponse,
    summary="Usage for one UTC day"
)
async def get_daily_usage(
    day: Optional[date] = Query(None, description="UTC day (default: today)"),
    governor: CostGovernor = Depends(get_cost_governor)
):
    return UsageSummaryResponse.from_domain(await governor.get_daily_usage(day))


@router.get(
    "/monthly",
    response_model=UsageSummaryResponse,
    summary="Usage for one UTC month"
)
async def get_monthly_usage(
    year: Optional[int] = Query(None, ge=2000, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    governor: CostGovernor = Depends(get_cost_governor)
):
    return UsageSummaryResponse.from_domain(await governor.get_monthly_usage(year, month))


@router.put(
    "/limits",
    response_model=CostLimitsResponse,
    summary="Update cost limits",
    description="""
    Partial update of the spend and rate limits. Omitted fields are kept.

    Free-tier accounts are clamped to the free-tier caps (daily $3, monthly $25,
    3000 tokens per request, 1500 requests per day, 300 per hour) whatever the
    requested values are.
    """
)
async def update_limits(
    request: Request,
    payload: CostLimitsUpdateRequest,
    governor: CostGovernor = Depends(get_cost_governor)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    changes = payload.model_dump(exclude_none=True)
    logger.info("Updating cost limits", extra={"correlation_id": correlation_id, "fields": sorted(changes)})

    limits = await governor.update_limits(changes)
    return CostLimitsResponse.from_domain(limits)


@router.get(
    "/export",
    response_model=UsageExportResponse,
    summary="Export usage records in a time range"
)
async def export_usage(
    start: datetime = Query(..., description="Inclusive start (ISO 8601)"),
    end: datetime = Query(..., description="Exclusive end (ISO 8601)"),
    governor: CostGovernor = Depends(get_cost_governor)
):
    start, end = _as_utc(start), _as_utc(end)
    records = await governor.export_usage(start, end)
    return UsageExportResponse(
        start=start,
        end=end,
        records=[UsageRecordResponse.from_domain(r) for r in records],
        total_cost=round(sum(r.estimated_cost for r in records), 8),
    )


@router.delete(
    "/usage",
    response_model=UsageResetResponse,
    summary="Clear the usage ledger"
)
async def reset_usage(
    request: Request,
    governor: CostGovernor = Depends(get_cost_governor)
):
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    removed = await governor.reset_usage()
    logger.warning("Usage ledger cleared via API", extra={"correlation_id": correlation_id, "removed": removed})
    return UsageResetResponse(removed_records=removed)
