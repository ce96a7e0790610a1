"""
Infrastructure Layer
=====================

Low-level technical concerns:
- Logging setup
- Clock and windowed counters
- Circuit breaker
- Background job scheduling
- Metrics export
"""
