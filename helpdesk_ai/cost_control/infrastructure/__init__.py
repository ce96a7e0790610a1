"""
Cost Control Infrastructure Layer
=================================

SQLAlchemy models and repositories for the usage ledger and cost limits.
"""

from helpdesk_ai.cost_control.infrastructure.repositories import (
    SQLAlchemyUsageLedger,
    SQLAlchemyCostLimitsStore,
)

__all__ = ["SQLAlchemyUsageLedger", "SQLAlchemyCostLimitsStore"]
