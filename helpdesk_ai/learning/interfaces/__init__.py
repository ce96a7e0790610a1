"""Learning API routes."""

from helpdesk_ai.learning.interfaces.controllers import router

__all__ = ["router"]
