"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries. AI pipelines catch the
model-related ones and degrade; the HTTP layer maps the rest to status codes.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class ValidationException(ApplicationException):
    """Exception for validation errors, including malformed model payloads."""


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors (no credentials or model selected)."""


class BudgetExceededException(ApplicationException):
    """
    Raised when a model call is refused before reaching the provider.

    Carries the block reason and the cost estimate of the refused call.
    ``token_ceiling`` is set when the refusal is about the per-request token
    limit, which callers can work around by sending smaller prompts.
    """

    def __init__(
        self,
        reason: str,
        estimated_cost: float = 0.0,
        token_ceiling: bool = False,
        details: Optional[dict] = None
    ):
        self.reason = reason
        self.estimated_cost = estimated_cost
        self.token_ceiling = token_ceiling
        super().__init__(
            reason,
            details or {"reason": reason, "estimated_cost": estimated_cost}
        )


class QueueProcessingException(ApplicationException):
    """Exception for a failed mining pass over claimed queue items."""

    def __init__(
        self,
        message: str,
        item_ids: Optional[list] = None,
        details: Optional[dict] = None
    ):
        self.item_ids = item_ids or []
        super().__init__(message, details or {"item_ids": self.item_ids})


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class ProviderTransportException(ExternalServiceException):
    """Exception for model provider transport or response decode failures."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Model Provider", message, details)


def error_message(exc: BaseException) -> str:
    """Human-readable message for any exception, falling back to its type name."""
    if isinstance(exc, ApplicationException):
        return exc.message
    return str(exc) or type(exc).__name__
