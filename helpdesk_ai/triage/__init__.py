"""
Triage Module
=============

Confidence-gated ticket analysis, auto-response and escalation.

- domain: analysis entities, scoring rules, prompt builders
- application: TriageEngine and knowledge search
- infrastructure: SQLAlchemy repositories
- interfaces: FastAPI routes
"""
