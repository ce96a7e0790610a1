"""
Cost Control Module
===================

Bounded Context for model spend governance.

Responsibilities:
- Price model calls from a static per-model table
- Keep a 30-day rolling ledger of model usage
- Enforce daily/monthly spend, per-request token and request-rate limits
- Clamp free-tier accounts to hard ceilings
- Fast-path per-minute and per-user throttling
"""

__version__ = "1.0.0"
