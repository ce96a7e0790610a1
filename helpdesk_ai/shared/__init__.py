"""
Shared Kernel Module
====================

Shared infrastructure used across all bounded contexts (cost control,
triage, learning, tickets).

Architecture Pattern: Modular Monolith
- Each module is a bounded context
- Shared kernel contains only generic infrastructure

DO NOT add business logic from the bounded contexts to the shared kernel.
"""

__version__ = "1.0.0"
