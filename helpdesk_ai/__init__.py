"""Helpdesk AI: cost-governed model gateway, ticket triage and knowledge mining."""

__version__ = "1.0.0"
