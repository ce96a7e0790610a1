"""Triage API routes."""

from helpdesk_ai.triage.interfaces.controllers import router

__all__ = ["router"]
