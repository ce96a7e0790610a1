"""
Shared API Middleware
=====================

Common middleware and exception handlers for the FastAPI application.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from helpdesk_ai.core import (
    ApplicationException,
    BudgetExceededException,
    ConfigurationException,
    ExternalServiceException,
    QueueProcessingException,
    ResourceNotFoundException,
    ValidationException,
)
from helpdesk_ai.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class CorrelationIDMiddleware(BaseHTTPMiddleware):
    """
    Adds correlation ID to requests for tracing.

    An incoming X-Correlation-ID is kept so a ticket event can be followed
    from the ticketing system into model calls.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get("X-Correlation-ID", str(uuid.uuid4()))
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Tracks request metrics for monitoring.

    Records response times for observability.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.request_count = 0
        self.total_response_time = 0.0

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        self.request_count += 1

        response = await call_next(request)

        response_time = time.perf_counter() - start_time
        self.total_response_time += response_time
        response.headers["X-Response-Time"] = f"{response_time:.3f}s"

        return response


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs all requests and responses.

    Health checks are not logged.
    """

    QUIET_PATHS = ("/health",)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in self.QUIET_PATHS:
            return await call_next(request)

        correlation_id = getattr(request.state, "correlation_id", "unknown")
        start_time = time.perf_counter()

        logger.info(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "client": request.client.host if request.client else None
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "Request failed",
                extra={
                    "correlation_id": correlation_id,
                    "method": request.method,
                    "path": request.url.path,
                    "error": str(e),
                    "response_time_ms": int((time.perf_counter() - start_time) * 1000)
                }
            )
            raise

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "response_time_ms": int((time.perf_counter() - start_time) * 1000)
            }
        )
        return response


def _status_for(exc: ApplicationException) -> int:
    if isinstance(exc, BudgetExceededException):
        return 429
    if isinstance(exc, ConfigurationException):
        return 503
    if isinstance(exc, ResourceNotFoundException):
        return 404
    if isinstance(exc, ValidationException):
        return 422
    if isinstance(exc, ExternalServiceException):
        return 502
    if isinstance(exc, QueueProcessingException):
        return 500
    return 400


async def application_exception_handler(request: Request, exc: ApplicationException) -> JSONResponse:
    """
    Maps application exceptions to HTTP responses.

    Budget refusals carry the reason and the estimated cost of the refused call.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")
    status_code = _status_for(exc)

    logger.warning(
        "Application exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": exc.message,
            "status_code": status_code
        }
    )

    content = {
        "detail": exc.message,
        "error_type": type(exc).__name__,
        "correlation_id": correlation_id,
    }
    if isinstance(exc, BudgetExceededException):
        content["reason"] = exc.reason
        content["estimated_cost"] = exc.estimated_cost
    elif exc.details:
        content["details"] = exc.details

    return JSONResponse(status_code=status_code, content=content)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler for unhandled exceptions.

    Returns consistent error responses for all exceptions.
    """
    correlation_id = getattr(request.state, "correlation_id", "unknown")

    logger.error(
        "Unhandled exception",
        extra={
            "correlation_id": correlation_id,
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "error_message": str(exc)
        }
    )

    # Don't expose internal details in production
    is_dev = getattr(getattr(request.app.state, "settings", None), "environment", None) == "development"

    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "correlation_id": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "debug_info": str(exc) if is_dev else None
        }
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
