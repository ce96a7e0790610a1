"""
Helpdesk AI - Main Application
==============================

AI core of a support ticketing system.

Modules:
- Cost Control: usage ledger, spend limits and request throttling
- Triage: ticket analysis, complexity scoring, auto-response, escalation
- Learning: learning queue and knowledge mining from resolved tickets

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, prompt builders and pure scoring functions
- Infrastructure: Database, model gateway, metrics export
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

# Configuration and Core
from helpdesk_ai.config import settings
from helpdesk_ai.config.ai_settings import AISettingsManager
from helpdesk_ai.core import ApplicationException

# Infrastructure
from helpdesk_ai.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from helpdesk_ai.infrastructure.llm import ModelGateway, build_transports

# Cost control
from helpdesk_ai.cost_control.application import CostGovernor, RequestThrottle
from helpdesk_ai.cost_control.infrastructure import SQLAlchemyCostLimitsStore, SQLAlchemyUsageLedger

# Tickets, triage and learning
from helpdesk_ai.tickets.infrastructure import SQLAlchemyKnowledgeArticleRepository, SQLAlchemyTicketRepository
from helpdesk_ai.triage.application import KnowledgeSearchService, TriageEngine
from helpdesk_ai.triage.infrastructure import (
    SQLAlchemyAIAnalyticsRepository,
    SQLAlchemyAutoResponseRepository,
    SQLAlchemyComplexityScoreRepository,
)
from helpdesk_ai.learning.application import KnowledgeMiner, LearningQueue
from helpdesk_ai.learning.infrastructure import (
    SQLAlchemyLearningQueueRepository,
    SQLAlchemyLearningRunRepository,
)

# Module Routers
from helpdesk_ai.cost_control.interfaces import router as cost_router
from helpdesk_ai.triage.interfaces import router as triage_router
from helpdesk_ai.learning.interfaces import router as learning_router

# Shared
from helpdesk_ai.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    MetricsMiddleware,
    register_exception_handlers,
)
from helpdesk_ai.shared.infrastructure.clock import SystemClock
from helpdesk_ai.shared.infrastructure.counters import InMemoryCounterStore
from helpdesk_ai.shared.infrastructure.grafana import init_grafana_exporter
from helpdesk_ai.shared.infrastructure.logging import get_logger, setup_logging
from helpdesk_ai.shared.infrastructure.resilience import CircuitBreaker
from helpdesk_ai.shared.infrastructure.scheduler import IntervalJob, JobScheduler

logger = get_logger(__name__)


def _job_mining(app: FastAPI):
    """Scheduled mining of the learning queue."""

    async def run() -> None:
        if not app.state.ai_settings.current.auto_learn_enabled:
            logger.info("Scheduled knowledge mining disabled (auto_learn_enabled=false)")
            return
        try:
            stats = await app.state.knowledge_miner.run_from_queue()
        except ApplicationException as e:
            logger.error(
                "Scheduled knowledge mining failed",
                extra={"error_type": type(e).__name__, "error": e.message, "details": e.details}
            )
            return
        except SQLAlchemyError as e:
            logger.error("Scheduled knowledge mining failed - database error", extra={"error": str(e)})
            return
        logger.info("Scheduled knowledge mining finished", extra=stats.to_dict())

    return run


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load runtime AI settings and watch the YAML file
    3. Initialize database (create tables in development)
    4. Build cost governor, throttle and model gateway
    5. Build triage engine, learning queue and knowledge miner
    6. Start background jobs

    SHUTDOWN:
    1. Stop background jobs
    2. Stop settings watcher
    3. Close provider transports
    4. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk AI", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    # Runtime AI settings
    ai_settings = AISettingsManager()
    ai_settings.load(settings.ai_settings_path)
    ai_settings.start_watching()

    def settings_provider():
        return ai_settings.current

    # Database
    logger.info("Initializing database")
    init_database()
    if settings.environment == "development":
        # Use migrations outside development
        logger.info("Creating database tables")
        try:
            await create_tables()
        except (OSError, SQLAlchemyError) as e:
            logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    session_context = get_session_context
    clock = SystemClock()

    # Cost control
    governor = CostGovernor(
        SQLAlchemyUsageLedger(session_context),
        SQLAlchemyCostLimitsStore(session_context),
        clock=clock
    )
    throttle = RequestThrottle(InMemoryCounterStore(clock), settings_provider)

    # Metrics export
    metrics_exporter = None
    if settings.grafana_host and settings.grafana_api_key and settings.grafana_instance_id:
        metrics_exporter = init_grafana_exporter(
            host=settings.grafana_host,
            api_key=settings.grafana_api_key,
            instance_id=settings.grafana_instance_id
        )
    else:
        logger.info("Grafana OTLP exporter not configured - metrics will not be exported")

    # Model gateway
    gateway = ModelGateway(
        governor,
        build_transports(settings),
        settings_provider,
        throttle=throttle,
        circuit_breaker=CircuitBreaker(
            "model-provider",
            failure_threshold=settings.provider_failure_threshold,
            recovery_timeout=settings.provider_recovery_timeout
        ),
        metrics_exporter=metrics_exporter
    )
    if not gateway.is_configured():
        logger.warning(
            "No model provider configured - AI features run in degraded mode",
            extra={"model_id": ai_settings.current.model_id}
        )

    # Triage
    tickets = SQLAlchemyTicketRepository(session_context)
    articles = SQLAlchemyKnowledgeArticleRepository(session_context)
    triage_engine = TriageEngine(
        gateway,
        tickets,
        KnowledgeSearchService(gateway, articles, settings_provider),
        SQLAlchemyComplexityScoreRepository(session_context),
        SQLAlchemyAutoResponseRepository(session_context),
        SQLAlchemyAIAnalyticsRepository(session_context),
        settings_provider
    )

    # Learning
    learning_queue = LearningQueue(SQLAlchemyLearningQueueRepository(session_context), clock=clock)
    knowledge_miner = KnowledgeMiner(
        gateway,
        tickets,
        articles,
        learning_queue,
        SQLAlchemyLearningRunRepository(session_context),
        settings_provider,
        clock=clock
    )

    # Store services in app state for dependency injection
    app.state.settings = settings
    app.state.ai_settings = ai_settings
    app.state.cost_governor = governor
    app.state.model_gateway = gateway
    app.state.triage_engine = triage_engine
    app.state.learning_queue = learning_queue
    app.state.knowledge_miner = knowledge_miner

    # Background jobs
    scheduler = JobScheduler([
        IntervalJob(
            job_id="knowledge_mining",
            name="Knowledge mining from learning queue",
            func=_job_mining(app),
            interval_seconds=settings.learning_interval_hours * 3600,
            misfire_grace_time=600
        ),
        IntervalJob(
            job_id="throttle_prune",
            name="Prune throttle counters",
            func=throttle.prune,
            interval_seconds=settings.counter_prune_interval_seconds
        ),
    ])
    if settings.scheduler_enabled:
        await scheduler.start()
    app.state.scheduler = scheduler

    logger.info("Helpdesk AI started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk AI")

    await scheduler.stop()
    ai_settings.stop_watching()
    await gateway.close()
    await close_database()

    logger.info("Helpdesk AI shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk AI API",
    description="""
    ## AI Core for Support Ticketing

    Cost-governed model calls, ticket triage and knowledge mining.

    ---

    ### 💰 Cost Control

    - `GET /ai/costs` - Usage statistics against the configured limits
    - `GET /ai/costs/daily`, `GET /ai/costs/monthly` - Usage summaries
    - `PUT /ai/costs/limits` - Update spend and rate limits
    - `GET /ai/costs/export` - Export ledger records for a time range
    - `DELETE /ai/costs/usage` - Clear the usage ledger

    ### 🤖 Triage

    - `POST /triage/tickets/{ticket_id}/process` - Analyze, score, respond, escalate
    - `GET /triage/tickets/{ticket_id}/complexity` - Stored complexity score

    ### 📚 Learning

    - `POST /learning/queue/{ticket_id}` - Queue a resolved ticket
    - `GET /learning/queue` - Queue items by status
    - `POST /learning/queue/requeue` - Requeue eligible failed items
    - `POST /learning/run` - Run knowledge mining now
    - `POST /learning/articles/{article_id}/publish` - Publish a draft

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware ===
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
# Added last so it runs first and the correlation id is set for logging
app.add_middleware(CorrelationIDMiddleware)
register_exception_handlers(app)

# === Include Module Routers ===
app.include_router(cost_router)
app.include_router(triage_router)
app.include_router(learning_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "model_gateway": "configured",
                        "ai_settings": "loaded",
                        "scheduler": "running"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Missing model credentials are reported but do not make the service
    unhealthy: triage and mining degrade instead of failing.
    """
    state = request.app.state
    gateway = getattr(state, "model_gateway", None)
    scheduler = getattr(state, "scheduler", None)

    checks = {
        "model_gateway": "configured" if gateway and gateway.is_configured() else "not_configured",
        "ai_settings": "loaded" if getattr(state, "ai_settings", None) else "not_loaded",
        "scheduler": "running" if scheduler and scheduler.is_running else "stopped",
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk AI",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "cost_control": {"prefix": "/ai/costs"},
            "triage": {"prefix": "/triage"},
            "learning": {"prefix": "/learning"}
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk_ai.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
