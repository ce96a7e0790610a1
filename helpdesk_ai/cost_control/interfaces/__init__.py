"""Cost control API routes."""

from helpdesk_ai.cost_control.interfaces.controllers import router

__all__ = ["router"]
