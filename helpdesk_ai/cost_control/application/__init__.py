"""
Cost Control Application Layer
==============================

Contains:
- Services: CostGovernor (ledger + limits), RequestThrottle (fast path)
- Repository interfaces for the ledger and limits store
- DTOs for the cost endpoints
"""

from helpdesk_ai.cost_control.application.services import (
    CostGovernor,
    IUsageLedger,
    ICostLimitsStore,
)
from helpdesk_ai.cost_control.application.throttling import (
    RequestThrottle,
    ThrottleDecision,
)
from helpdesk_ai.cost_control.application.dto import (
    CostLimitsUpdateRequest,
    CostLimitsResponse,
    UsageSummaryResponse,
    UsageRecordResponse,
    CostStatisticsResponse,
    UsageExportResponse,
    UsageResetResponse,
)

__all__ = [
    "CostGovernor",
    "IUsageLedger",
    "ICostLimitsStore",
    "RequestThrottle",
    "ThrottleDecision",
    "CostLimitsUpdateRequest",
    "CostLimitsResponse",
    "UsageSummaryResponse",
    "UsageRecordResponse",
    "CostStatisticsResponse",
    "UsageExportResponse",
    "UsageResetResponse",
]
